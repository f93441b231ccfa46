"""Order model type definitions for database operations."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TypedDict
from uuid import UUID


class OrderStatus(str, Enum):
    """Delivery progress of an order, in lifecycle order."""

    RECEIVED = "received"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


class PaymentMode(str, Enum):
    """How the customer pays."""

    CASH = "cash"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    """Payment state recorded with the order."""

    PENDING = "pending"
    PAID = "paid"
    COD = "cod"


class OrderLine(TypedDict):
    """Orders table row representation.

    One row per product line. All rows of one checkout share ``order_id``
    and carry identical customer, payment and status fields.
    """

    id: UUID
    order_id: str
    customer_name: str
    customer_email: str | None
    phone: str
    address: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    payment_mode: str
    payment_status: str
    payment_reference: str | None
    status: str
    created_at: datetime
    updated_at: datetime


class OrderLineCreate(TypedDict, total=False):
    """Data inserted for one line of a new order batch."""

    order_id: str
    customer_name: str
    customer_email: str | None
    phone: str
    address: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: str
    line_total: str
    payment_mode: str
    payment_status: str
    payment_reference: str | None
    status: str
    created_at: str
    updated_at: str
