"""Delivery staff API routes. Admin only."""

from fastapi import APIRouter, Query, Response, status

from src.api.deps import AdminUser
from src.models.staff import StaffStatus
from src.schemas.staff import StaffCreate, StaffListResponse, StaffResponse, StaffUpdate
from src.services.staff_service import StaffService

router = APIRouter(prefix="/staff", tags=["staff"])


@router.get(
    "",
    response_model=StaffListResponse,
    summary="List delivery staff",
    description="Lists the roster with assigned and available counts.",
)
async def list_staff(
    admin: AdminUser,
    status_filter: StaffStatus | None = Query(default=None, alias="status", description="Availability filter"),
) -> StaffListResponse:
    """List delivery staff."""
    members = await StaffService().list_staff(status_filter)
    assigned = sum(1 for member in members if member["status"] == StaffStatus.ASSIGNED.value)
    return StaffListResponse(
        items=[StaffResponse(**member) for member in members],
        assigned=assigned,
        available=len(members) - assigned,
    )


@router.post(
    "",
    response_model=StaffResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add delivery staff",
)
async def create_staff(data: StaffCreate, admin: AdminUser) -> StaffResponse:
    """Add a delivery staff member."""
    member = await StaffService().create_staff(data)
    return StaffResponse(**member)


@router.get("/{staff_id}", response_model=StaffResponse, summary="Get delivery staff")
async def get_staff(staff_id: str, admin: AdminUser) -> StaffResponse:
    """Get a staff member by ID."""
    member = await StaffService().get_staff(staff_id)
    return StaffResponse(**member)


@router.put("/{staff_id}", response_model=StaffResponse, summary="Update delivery staff")
async def update_staff(staff_id: str, data: StaffUpdate, admin: AdminUser) -> StaffResponse:
    """Update a staff member's details or availability."""
    member = await StaffService().update_staff(staff_id, data)
    return StaffResponse(**member)


@router.post(
    "/{staff_id}/toggle",
    response_model=StaffResponse,
    summary="Toggle availability",
    description="Flips a staff member between assigned and not_assigned.",
)
async def toggle_staff(staff_id: str, admin: AdminUser) -> StaffResponse:
    """Toggle a staff member's availability."""
    member = await StaffService().toggle_status(staff_id)
    return StaffResponse(**member)


@router.delete(
    "/{staff_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove delivery staff",
)
async def delete_staff(staff_id: str, admin: AdminUser) -> Response:
    """Remove a staff member."""
    await StaffService().delete_staff(staff_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
