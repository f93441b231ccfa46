"""Loyalty Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.models.loyalty import LedgerEntryKind


class PointsBalanceResponse(BaseModel):
    """Schema for GET /loyalty/points/{email}."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(description="Customer email")
    loyalty_points: int = Field(alias="loyaltyPoints", description="Current points balance")


class PointsChangeRequest(BaseModel):
    """Schema for POST /loyalty/add-points and /loyalty/redeem-points."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=3, description="Customer email")
    points: int = Field(description="Units ordered (add) or points to spend (redeem)")
    order_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("order_id", "orderId"),
        description="Order the change belongs to; repeats for the same order are ignored",
    )
    order_subtotal: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices("order_subtotal", "orderSubtotal"),
        description="Subtotal being discounted (redeem only)",
    )


class PointsChangeResponse(BaseModel):
    """Schema for point mutation responses."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    loyalty_points: int = Field(alias="loyaltyPoints", description="Balance after the change")


class LedgerEntryResponse(BaseModel):
    """One accrue/redeem event."""

    model_config = ConfigDict(from_attributes=True)

    kind: LedgerEntryKind
    points: int
    balance_before: int
    balance_after: int
    order_id: str | None = None
    created_at: datetime


class LoyaltySummaryResponse(BaseModel):
    """Schema for GET /loyalty/summary/{email}."""

    model_config = ConfigDict(from_attributes=True)

    email: str
    balance: int = Field(description="Points available")
    total_earned: int = Field(description="Points ever accrued")
    total_redeemed: int = Field(description="Points ever redeemed")
    history: list[LedgerEntryResponse] = Field(default_factory=list, description="Recent ledger entries")
