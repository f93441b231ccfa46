"""Unit tests for StaffService."""

import pytest

from src.api.middleware.error_handler import InvalidStateError, NotFoundError, ValidationError
from src.models.staff import StaffStatus
from src.schemas.staff import StaffCreate, StaffUpdate
from src.services.staff_service import StaffService

RAVI = {
    "id": "s-ravi",
    "name": "Ravi Kumar",
    "phone": "9000000001",
    "email": "ravi@example.com",
    "status": "not_assigned",
    "created_at": "2026-09-01T09:00:00+00:00",
}


@pytest.fixture
def staff_service(supabase_stub) -> StaffService:
    """Create StaffService backed by the Supabase stub."""
    return StaffService()


class TestRoster:
    """Tests for staff CRUD."""

    @pytest.mark.asyncio
    async def test_new_staff_start_unassigned(self, staff_service: StaffService, supabase_stub) -> None:
        """Test create_staff defaults and phone normalization."""
        supabase_stub.respond("delivery_staff", "insert", [RAVI])

        await staff_service.create_staff(StaffCreate(name="Ravi Kumar", phone="90000 00001"))

        row = supabase_stub.table("delivery_staff").insert.call_args.args[0]
        assert row["status"] == "not_assigned"
        assert row["phone"] == "9000000001"

    @pytest.mark.asyncio
    async def test_update_requires_fields(self, staff_service: StaffService) -> None:
        """Test that an empty update is rejected."""
        with pytest.raises(ValidationError):
            await staff_service.update_staff("s-ravi", StaffUpdate())

    @pytest.mark.asyncio
    async def test_update_unknown_staff_raises(self, staff_service: StaffService) -> None:
        """Test NotFoundError on update."""
        with pytest.raises(NotFoundError):
            await staff_service.update_staff("s-none", StaffUpdate(name="Someone"))

    @pytest.mark.asyncio
    async def test_toggle_flips_status(self, staff_service: StaffService, supabase_stub) -> None:
        """Test toggling an available member to assigned."""
        supabase_stub.respond("delivery_staff", "select", [RAVI])
        supabase_stub.respond("delivery_staff", "update", [{**RAVI, "status": "assigned"}])

        member = await staff_service.toggle_status("s-ravi")

        assert member["status"] == "assigned"
        supabase_stub.query("delivery_staff", "update").eq.assert_any_call("status", "not_assigned")

    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, staff_service: StaffService, supabase_stub) -> None:
        """Test list_staff filter."""
        await staff_service.list_staff(StaffStatus.ASSIGNED)

        supabase_stub.query("delivery_staff", "select").eq.assert_called_once_with("status", "assigned")


class TestAssignOrder:
    """Tests for assign_order and release_order methods."""

    @pytest.mark.asyncio
    async def test_assigns_and_moves_order_out_for_delivery(
        self, staff_service: StaffService, supabase_stub, make_order_row
    ) -> None:
        """Test a successful assignment."""
        supabase_stub.respond("delivery_staff", "select", [RAVI])
        supabase_stub.respond("delivery_staff", "update", [{**RAVI, "status": "assigned"}])
        supabase_stub.respond("orders", "select", [make_order_row(status="preparing")])
        supabase_stub.respond("orders", "update", [make_order_row(status="out_for_delivery")])
        supabase_stub.respond(
            "staff_assignments",
            "upsert",
            [{"order_id": "OJ-123456", "staff_id": "s-ravi", "staff_name": "Ravi Kumar"}],
        )

        assignment = await staff_service.assign_order("OJ-123456", "s-ravi")

        assert assignment["staff_id"] == "s-ravi"
        assert supabase_stub.table("orders").update.call_args.args[0]["status"] == "out_for_delivery"
        upserted = supabase_stub.table("staff_assignments").upsert.call_args.args[0]
        assert upserted["staff_phone"] == "9000000001"

    @pytest.mark.asyncio
    async def test_busy_staff_cannot_be_assigned(self, staff_service: StaffService, supabase_stub) -> None:
        """Test that the reservation guard rejects busy staff."""
        supabase_stub.respond("delivery_staff", "select", [{**RAVI, "status": "assigned"}])
        supabase_stub.respond("delivery_staff", "update", [])

        with pytest.raises(InvalidStateError):
            await staff_service.assign_order("OJ-123456", "s-ravi")
        supabase_stub.table("orders").update.assert_not_called()

    @pytest.mark.asyncio
    async def test_reservation_is_undone_when_order_cannot_move(
        self, staff_service: StaffService, supabase_stub, make_order_row
    ) -> None:
        """Test staff are freed when the order is already delivered."""
        supabase_stub.respond("delivery_staff", "select", [RAVI])
        supabase_stub.respond("delivery_staff", "update", [{**RAVI, "status": "assigned"}])
        supabase_stub.respond("orders", "select", [make_order_row(status="delivered")])

        with pytest.raises(InvalidStateError):
            await staff_service.assign_order("OJ-123456", "s-ravi")

        statuses = [c.args[0]["status"] for c in supabase_stub.table("delivery_staff").update.call_args_list]
        assert statuses == ["assigned", "not_assigned"]
        supabase_stub.table("staff_assignments").upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_release_frees_staff(self, staff_service: StaffService, supabase_stub) -> None:
        """Test release_order after delivery."""
        supabase_stub.respond("staff_assignments", "delete", [{"order_id": "OJ-123456", "staff_id": "s-ravi"}])

        await staff_service.release_order("OJ-123456")

        update = supabase_stub.table("delivery_staff").update
        update.assert_called_once_with({"status": "not_assigned"})
        supabase_stub.query("delivery_staff", "update").eq.assert_called_with("id", "s-ravi")
