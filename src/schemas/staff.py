"""Delivery staff Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.staff import StaffStatus


class StaffCreate(BaseModel):
    """Schema for adding a delivery staff member."""

    name: str = Field(min_length=1, max_length=100, description="Full name")
    phone: str = Field(description="10-digit phone number")
    email: str | None = Field(default=None, description="Contact email")


class StaffUpdate(BaseModel):
    """Schema for editing a delivery staff member. Omitted fields are unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = None
    email: str | None = None
    status: StaffStatus | None = None


class StaffResponse(BaseModel):
    """Schema for delivery staff API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Staff identifier")
    name: str
    phone: str
    email: str | None = None
    status: StaffStatus
    created_at: datetime | None = None


class StaffListResponse(BaseModel):
    """Schema for the staff roster."""

    items: list[StaffResponse]
    assigned: int = Field(description="Members currently on a delivery")
    available: int = Field(description="Members free for assignment")
