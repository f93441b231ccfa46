"""Delivery staff roster and order assignment service."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.api.middleware.error_handler import InvalidStateError, NotFoundError, ValidationError
from src.core.supabase import get_supabase_client
from src.models.order import OrderStatus
from src.models.staff import StaffStatus
from src.schemas.staff import StaffCreate, StaffUpdate
from src.services.order_lifecycle import normalize_phone
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)


class StaffService:
    """Service for delivery staff and their order assignments."""

    def __init__(self) -> None:
        """Initialize staff service with Supabase client."""
        self.client = get_supabase_client()
        self.order_service = OrderService()

    async def list_staff(self, status: StaffStatus | None = None) -> list[dict[str, Any]]:
        """List staff members, optionally only those with ``status``."""
        query = self.client.table("delivery_staff").select("*")
        if status:
            query = query.eq("status", status.value)
        response = query.order("name").execute()
        return response.data or []

    async def get_staff(self, staff_id: str) -> dict[str, Any]:
        """Get a staff member by ID.

        Raises:
            NotFoundError: If the staff member does not exist.
        """
        response = (
            self.client.table("delivery_staff")
            .select("*")
            .eq("id", staff_id)
            .execute()
        )
        if not response.data:
            raise NotFoundError("Staff member not found")
        return response.data[0]

    async def create_staff(self, data: StaffCreate) -> dict[str, Any]:
        """Add a staff member; new members start unassigned."""
        response = (
            self.client.table("delivery_staff")
            .insert(
                {
                    "name": data.name.strip(),
                    "phone": normalize_phone(data.phone),
                    "email": data.email.strip().lower() if data.email else None,
                    "status": StaffStatus.NOT_ASSIGNED.value,
                    "created_at": _now(),
                }
            )
            .execute()
        )
        logger.info("Added delivery staff %s", response.data[0]["id"])
        return response.data[0]

    async def update_staff(self, staff_id: str, data: StaffUpdate) -> dict[str, Any]:
        """Update the provided fields of a staff member.

        Raises:
            ValidationError: If no fields were provided.
            NotFoundError: If the staff member does not exist.
        """
        update_data = data.model_dump(exclude_none=True, mode="json")
        if not update_data:
            raise ValidationError("No fields to update")
        if "phone" in update_data:
            update_data["phone"] = normalize_phone(update_data["phone"])

        response = (
            self.client.table("delivery_staff")
            .update(update_data)
            .eq("id", staff_id)
            .execute()
        )
        if not response.data:
            raise NotFoundError("Staff member not found")
        return response.data[0]

    async def toggle_status(self, staff_id: str) -> dict[str, Any]:
        """Flip a staff member between assigned and not_assigned."""
        staff = await self.get_staff(staff_id)
        current = StaffStatus(staff["status"])
        target = StaffStatus.NOT_ASSIGNED if current == StaffStatus.ASSIGNED else StaffStatus.ASSIGNED

        response = (
            self.client.table("delivery_staff")
            .update({"status": target.value})
            .eq("id", staff_id)
            .eq("status", current.value)
            .execute()
        )
        if not response.data:
            raise InvalidStateError("Staff status changed concurrently, reload and retry")
        return response.data[0]

    async def delete_staff(self, staff_id: str) -> None:
        """Remove a staff member.

        Raises:
            NotFoundError: If the staff member does not exist.
        """
        response = self.client.table("delivery_staff").delete().eq("id", staff_id).execute()
        if not response.data:
            raise NotFoundError("Staff member not found")

    async def get_assignment(self, order_id: str) -> dict[str, Any] | None:
        """Get the staff assignment for an order, if any."""
        response = (
            self.client.table("staff_assignments")
            .select("*")
            .eq("order_id", order_id)
            .execute()
        )
        return response.data[0] if response.data else None

    async def assign_order(self, order_id: str, staff_id: str) -> dict[str, Any]:
        """Send an order out for delivery with an available staff member.

        The staff member is reserved first with a conditional update, so two
        admins cannot hand the same person two orders. If the order cannot
        move to out_for_delivery the reservation is undone.

        Returns:
            dict: The created assignment row.

        Raises:
            NotFoundError: If the order or staff member does not exist.
            InvalidStateError: If the staff member is busy or the order cannot
                move to out_for_delivery.
        """
        staff = await self.get_staff(staff_id)

        reserved = (
            self.client.table("delivery_staff")
            .update({"status": StaffStatus.ASSIGNED.value})
            .eq("id", staff_id)
            .eq("status", StaffStatus.NOT_ASSIGNED.value)
            .execute()
        )
        if not reserved.data:
            raise InvalidStateError(f"{staff['name']} is already assigned to another order")

        try:
            await self.order_service.update_status(order_id, OrderStatus.OUT_FOR_DELIVERY)
        except (NotFoundError, InvalidStateError):
            self._set_staff_status(staff_id, StaffStatus.NOT_ASSIGNED)
            raise

        previous = await self.get_assignment(order_id)
        if previous and str(previous["staff_id"]) != staff_id:
            self._set_staff_status(str(previous["staff_id"]), StaffStatus.NOT_ASSIGNED)

        response = (
            self.client.table("staff_assignments")
            .upsert(
                {
                    "order_id": order_id,
                    "staff_id": staff_id,
                    "staff_name": staff["name"],
                    "staff_phone": staff["phone"],
                    "staff_email": staff.get("email"),
                    "assigned_at": _now(),
                }
            )
            .execute()
        )

        logger.info("Order %s assigned to staff %s", order_id, staff_id)
        return response.data[0]

    async def release_order(self, order_id: str) -> None:
        """Free the staff member attached to an order and drop the assignment."""
        response = (
            self.client.table("staff_assignments")
            .delete()
            .eq("order_id", order_id)
            .execute()
        )
        for assignment in response.data or []:
            self._set_staff_status(str(assignment["staff_id"]), StaffStatus.NOT_ASSIGNED)
            logger.info("Staff %s released from order %s", assignment["staff_id"], order_id)

    def _set_staff_status(self, staff_id: str, status: StaffStatus) -> None:
        self.client.table("delivery_staff").update({"status": status.value}).eq("id", staff_id).execute()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
