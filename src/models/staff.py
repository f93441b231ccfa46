"""Delivery staff model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID


class StaffStatus(str, Enum):
    """Availability of a delivery staff member."""

    ASSIGNED = "assigned"
    NOT_ASSIGNED = "not_assigned"


class DeliveryStaff(TypedDict):
    """Delivery_staff table row representation."""

    id: UUID
    name: str
    phone: str
    email: str | None
    status: str
    created_at: datetime


class StaffAssignment(TypedDict):
    """Staff_assignments table row. Maps an order to its delivery person."""

    order_id: str
    staff_id: UUID
    staff_name: str
    staff_phone: str
    staff_email: str | None
    assigned_at: datetime
