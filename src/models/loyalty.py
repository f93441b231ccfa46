"""Loyalty model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID


class LedgerEntryKind(str, Enum):
    """Kind of balance movement recorded in the ledger."""

    ACCRUE = "accrue"
    REDEEM = "redeem"


class LoyaltyAccount(TypedDict):
    """Loyalty_accounts table row. One per customer email."""

    email: str
    balance: int
    updated_at: datetime


class LedgerEntry(TypedDict):
    """Loyalty_ledger table row.

    Immutable record of one accrue or redeem event.
    """

    id: UUID
    email: str
    kind: str
    points: int
    balance_before: int
    balance_after: int
    order_id: str | None
    created_at: datetime
