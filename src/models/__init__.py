"""Database model type definitions."""

from src.models.feedback import Feedback
from src.models.loyalty import LedgerEntry, LedgerEntryKind, LoyaltyAccount
from src.models.order import OrderLine, OrderStatus, PaymentMode, PaymentStatus
from src.models.product import Product
from src.models.staff import DeliveryStaff, StaffAssignment, StaffStatus

__all__ = [
    "DeliveryStaff",
    "Feedback",
    "LedgerEntry",
    "LedgerEntryKind",
    "LoyaltyAccount",
    "OrderLine",
    "OrderStatus",
    "PaymentMode",
    "PaymentStatus",
    "Product",
    "StaffAssignment",
    "StaffStatus",
]
