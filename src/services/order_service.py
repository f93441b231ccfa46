"""Order lifecycle business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.api.middleware.error_handler import (
    EmptyCartError,
    InvalidStateError,
    NotFoundError,
    PartialBatchError,
    ValidationError,
)
from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.models.order import OrderStatus, PaymentMode, PaymentStatus
from src.schemas.order import OrderCreate
from src.services.order_lifecycle import (
    can_cancel,
    ensure_transition,
    generate_order_id,
    group_order_lines,
    is_valid_order_id,
    matches_search,
    normalize_phone,
    period_start,
    progress_steps,
)

logger = logging.getLogger(__name__)


class OrderService:
    """Service for creating, tracking and progressing orders.

    An order is a batch of rows in the ``orders`` table sharing one
    ``order_id``. Every mutation is scoped by ``order_id`` and written as a
    single statement so all lines change together.
    """

    TABLE = "orders"
    MAX_ID_ATTEMPTS = 5

    def __init__(self) -> None:
        """Initialize order service with Supabase client."""
        self.client = get_supabase_client()
        self.settings = get_settings()

    async def create_order(self, data: OrderCreate) -> dict[str, Any]:
        """Create an order batch atomically.

        Args:
            data: Customer details and line items.

        Returns:
            dict: The created order group.

        Raises:
            EmptyCartError: If no line items were supplied.
            ValidationError: If customer fields or quantities are invalid.
            PartialBatchError: If the batch could not be stored in full.
        """
        rows = self._build_rows(data)
        order_id = rows[0]["order_id"]

        existing = await self._fetch_lines(order_id)
        if existing and data.order_id:
            if existing[0]["phone"] != rows[0]["phone"]:
                raise ValidationError(f"Order id {order_id} is already in use")
            logger.info("Order %s already exists, returning stored batch", order_id)
            return group_order_lines(existing)[0]

        attempts = 1
        while existing:
            if attempts >= self.MAX_ID_ATTEMPTS:
                raise PartialBatchError(order_id, "Could not allocate a unique order id")
            order_id = generate_order_id(self.settings.order_id_prefix)
            for row in rows:
                row["order_id"] = order_id
            existing = await self._fetch_lines(order_id)
            attempts += 1

        try:
            response = self.client.table(self.TABLE).insert(rows).execute()
        except Exception as e:
            logger.error("Failed to insert order %s: %s", order_id, str(e))
            await self._remove_partial_batch(order_id)
            raise PartialBatchError(order_id) from e

        stored = response.data or []
        if len(stored) != len(rows):
            logger.error(
                "Order %s stored %d of %d lines, rolling back",
                order_id,
                len(stored),
                len(rows),
            )
            await self._remove_partial_batch(order_id)
            raise PartialBatchError(order_id)

        logger.info("Order %s created with %d lines", order_id, len(stored))
        return group_order_lines(stored)[0]

    async def add_line(self, data: OrderCreate) -> dict[str, Any]:
        """Add one product line to an order, creating the order if needed.

        Supports clients that post each cart line separately under a shared
        order id. Lines join an existing order only while it is still
        ``received``, and take its header fields so the batch stays uniform.
        Re-posting a product already on the order is treated as a retry.

        Raises:
            ValidationError: If the order id belongs to another customer.
            InvalidStateError: If the order has already progressed, including
                while the line was being added.
            PartialBatchError: If the line could not be stored.
        """
        if not data.order_id:
            raise ValidationError("orderId is required when adding a line")

        existing = await self._fetch_lines(data.order_id)
        if not existing:
            return await self.create_order(data)

        row = self._build_rows(data)[0]
        header = existing[0]
        if header["phone"] != row["phone"]:
            raise ValidationError(f"Order id {data.order_id} is already in use")
        if OrderStatus(header["status"]) != OrderStatus.RECEIVED:
            raise InvalidStateError(f"Order {data.order_id} is already {header['status']}")

        if any(str(line["product_id"]) == row["product_id"] for line in existing):
            return group_order_lines(existing)[0]

        for field in ("customer_name", "customer_email", "address", "payment_mode", "payment_status", "payment_reference", "status"):
            row[field] = header.get(field)

        response = self.client.table(self.TABLE).insert(row).execute()
        if not response.data:
            raise PartialBatchError(data.order_id, f"Line {row['product_id']} for order {data.order_id} could not be saved")
        line_id = response.data[0]["id"]

        # a status update between the check above and the insert leaves the new line behind
        lines = await self._fetch_lines(data.order_id)
        if any(OrderStatus(line["status"]) != OrderStatus.RECEIVED for line in lines):
            self.client.table(self.TABLE).delete().eq("id", line_id).execute()
            logger.warning("Order %s advanced while adding %s, line removed", data.order_id, row["product_id"])
            raise InvalidStateError(f"Order {data.order_id} is no longer accepting new lines")

        logger.info("Added %s to order %s", row["product_id"], data.order_id)
        return group_order_lines(lines)[0]

    async def get_order(self, order_id: str) -> dict[str, Any]:
        """Get an order group by its order id.

        Raises:
            NotFoundError: If no lines exist for the order id.
        """
        order = await self.find_order(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def find_order(self, order_id: str) -> dict[str, Any] | None:
        """Get an order group, or None if no lines exist for the order id."""
        lines = await self._fetch_lines(order_id)
        return group_order_lines(lines)[0] if lines else None

    async def list_orders(
        self,
        status: OrderStatus | None = None,
        payment_mode: PaymentMode | None = None,
        period: str | None = None,
        since: datetime | None = None,
        customer_email: str | None = None,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        """List order groups, newest first.

        Args:
            status: Only orders in this delivery status.
            payment_mode: Only orders paid this way.
            period: Named window (``week``, ``month``, ``year``).
            since: Explicit lower bound on creation time; wins over period.
            customer_email: Only this customer's orders.
            search: Free-text match on id, name, phone or product names.

        Returns:
            list[dict]: Order groups.
        """
        query = self.client.table(self.TABLE).select("*")

        if status:
            query = query.eq("status", status.value)
        if payment_mode:
            query = query.eq("payment_mode", payment_mode.value)
        if customer_email:
            query = query.eq("customer_email", customer_email.strip().lower())

        lower_bound = since or (period_start(period) if period else None)
        if lower_bound:
            query = query.gte("created_at", lower_bound.isoformat())

        response = query.order("created_at", desc=True).execute()
        groups = group_order_lines(response.data or [])

        if search:
            groups = [group for group in groups if matches_search(group, search)]
        return groups

    async def update_status(self, order_id: str, new_status: OrderStatus) -> dict[str, Any]:
        """Move every line of an order to ``new_status``.

        Transitions are forward-only. Re-applying the current status is a
        no-op. The write is conditional on the status read beforehand, so a
        concurrent cancel or update makes this call fail instead of
        overwriting it.

        Raises:
            NotFoundError: If the order does not exist.
            InvalidStateError: If the transition moves backwards or the order
                changed underneath this call.
        """
        lines = await self._fetch_lines(order_id)
        if not lines:
            raise NotFoundError(f"Order {order_id} not found")

        current = OrderStatus(lines[0]["status"])
        if current == new_status:
            return group_order_lines(lines)[0]

        ensure_transition(current, new_status)

        response = (
            self.client.table(self.TABLE)
            .update({"status": new_status.value, "updated_at": _now()})
            .eq("order_id", order_id)
            .eq("status", current.value)
            .execute()
        )

        if not response.data:
            raise InvalidStateError(f"Order {order_id} was modified concurrently, reload and retry")

        logger.info("Order %s moved from %s to %s", order_id, current.value, new_status.value)
        return group_order_lines(response.data)[0]

    async def cancel_order(self, order_id: str) -> None:
        """Cancel an order the kitchen has not started.

        Raises:
            NotFoundError: If the order does not exist.
            InvalidStateError: If the order has advanced past ``received``.
        """
        lines = await self._fetch_lines(order_id)
        if not lines:
            raise NotFoundError(f"Order {order_id} not found")

        current = OrderStatus(lines[0]["status"])
        if not can_cancel(current):
            raise InvalidStateError(
                f"Order {order_id} is already {current.value} and can no longer be cancelled"
            )

        response = (
            self.client.table(self.TABLE)
            .delete()
            .eq("order_id", order_id)
            .eq("status", OrderStatus.RECEIVED.value)
            .execute()
        )

        if not response.data:
            raise InvalidStateError(
                f"Order {order_id} moved past received and can no longer be cancelled"
            )

        logger.info("Order %s cancelled by customer", order_id)

    async def delete_order(self, order_id: str) -> None:
        """Delete an order regardless of status (admin only).

        Raises:
            NotFoundError: If the order does not exist.
        """
        response = self.client.table(self.TABLE).delete().eq("order_id", order_id).execute()
        if not response.data:
            raise NotFoundError(f"Order {order_id} not found")
        logger.info("Order %s deleted (%d lines)", order_id, len(response.data))

    async def get_tracking(self, order_id: str) -> dict[str, Any]:
        """Get an order with its delivery timeline and assigned staff."""
        order = await self.get_order(order_id)

        response = (
            self.client.table("staff_assignments")
            .select("*")
            .eq("order_id", order_id)
            .execute()
        )
        assignment = response.data[0] if response.data else None

        return {
            "order": order,
            "steps": progress_steps(order["status"]),
            "can_cancel": can_cancel(order["status"]),
            "assignment": assignment,
        }

    async def _fetch_lines(self, order_id: str) -> list[dict[str, Any]]:
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("order_id", order_id)
            .execute()
        )
        return response.data or []

    async def _remove_partial_batch(self, order_id: str) -> None:
        """Compensating delete so no partial batch survives a failed insert."""
        try:
            self.client.table(self.TABLE).delete().eq("order_id", order_id).execute()
        except Exception as e:
            logger.error("Compensating delete failed for order %s: %s", order_id, str(e))

    def _build_rows(self, data: OrderCreate) -> list[dict[str, Any]]:
        """Validate a batch and build every row in memory."""
        if not data.items:
            raise EmptyCartError()

        errors: list[dict[str, Any]] = []
        if not data.customer_name.strip():
            errors.append({"loc": ["customer_name"], "msg": "Name is required", "type": "missing"})
        if not data.address.strip():
            errors.append({"loc": ["address"], "msg": "Address is required", "type": "missing"})
        for index, item in enumerate(data.items):
            if item.quantity < 1:
                errors.append(
                    {"loc": ["items", str(index), "quantity"], "msg": "must be at least 1", "type": "value_error"}
                )
        if errors:
            raise ValidationError("Invalid order details", details=errors)

        phone = normalize_phone(data.phone)

        prefix = self.settings.order_id_prefix
        if data.order_id:
            if not is_valid_order_id(data.order_id, prefix):
                raise ValidationError(f"Order id must be '{prefix}' followed by 6 digits")
            order_id = data.order_id
        else:
            order_id = generate_order_id(prefix)

        payment_status = data.payment_status or _default_payment_status(data.payment_mode, data.payment_reference)
        now = _now()
        email = data.customer_email.strip().lower() if data.customer_email else None

        return [
            {
                "order_id": order_id,
                "customer_name": data.customer_name.strip(),
                "customer_email": email,
                "phone": phone,
                "address": data.address.strip(),
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
                "line_total": str(item.line_total if item.line_total is not None else item.unit_price * item.quantity),
                "payment_mode": data.payment_mode.value,
                "payment_status": payment_status.value,
                "payment_reference": data.payment_reference,
                "status": OrderStatus.RECEIVED.value,
                "created_at": now,
                "updated_at": now,
            }
            for item in data.items
        ]


def _default_payment_status(mode: PaymentMode, reference: str | None) -> PaymentStatus:
    if mode == PaymentMode.CASH:
        return PaymentStatus.COD
    return PaymentStatus.PAID if reference else PaymentStatus.PENDING


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
