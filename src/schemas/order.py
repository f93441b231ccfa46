"""Order Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.models.order import OrderStatus, PaymentMode, PaymentStatus
from src.schemas.common import Money

CENT = Decimal("0.01")


class OrderItemCreate(BaseModel):
    """Schema for one product line of a new order."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    product_id: str = Field(validation_alias=AliasChoices("product_id", "productId"), description="Product identifier")
    product_name: str = Field(validation_alias=AliasChoices("product_name", "productName"), description="Product name")
    quantity: int = Field(description="Units ordered (must be at least 1)")
    unit_price: Decimal = Field(
        validation_alias=AliasChoices("unit_price", "unitPrice"),
        ge=0,
        description="Price of one unit",
    )
    line_total: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices("line_total", "lineTotal"),
        ge=0,
        description="Charged amount for the line; defaults to unit_price * quantity",
    )


class OrderCreate(BaseModel):
    """Schema for creating an order batch via POST /orders.

    Field presence is checked by the order service so that a missing
    name, phone or address surfaces as a typed validation error.
    """

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    order_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("order_id", "orderId"),
        description="Client-generated order id, reused on retries",
    )
    customer_name: str = Field(
        default="",
        validation_alias=AliasChoices("customer_name", "name"),
        description="Customer name",
    )
    customer_email: str | None = Field(
        default=None,
        validation_alias=AliasChoices("customer_email", "email"),
        description="Customer email (loyalty account key)",
    )
    phone: str = Field(default="", description="10-digit phone number")
    address: str = Field(default="", description="Delivery address")
    payment_mode: PaymentMode = Field(
        default=PaymentMode.CASH,
        validation_alias=AliasChoices("payment_mode", "paymentMode"),
        description="cash or online",
    )
    payment_status: PaymentStatus | None = Field(
        default=None,
        validation_alias=AliasChoices("payment_status", "paymentStatus"),
        description="Defaults to cod for cash and pending for online",
    )
    payment_reference: str | None = Field(
        default=None,
        validation_alias=AliasChoices("payment_reference", "paymentReference", "paymentId"),
        description="Gateway payment id for online orders",
    )
    items: list[OrderItemCreate] = Field(default_factory=list, description="Order lines")


class OrderLineCreateRequest(BaseModel):
    """Single-line order body, one request per cart line sharing ``orderId``."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    order_id: str = Field(validation_alias=AliasChoices("order_id", "orderId"))
    customer_name: str = Field(default="", validation_alias=AliasChoices("customer_name", "name"))
    customer_email: str | None = Field(default=None, validation_alias=AliasChoices("customer_email", "email"))
    phone: str = ""
    address: str = ""
    product_id: str = Field(validation_alias=AliasChoices("product_id", "productId"))
    product_name: str = Field(validation_alias=AliasChoices("product_name", "productName"))
    quantity: int
    total_price: Decimal = Field(ge=0, validation_alias=AliasChoices("total_price", "totalPrice"))
    payment_mode: PaymentMode = Field(
        default=PaymentMode.CASH, validation_alias=AliasChoices("payment_mode", "paymentMode")
    )
    payment_status: PaymentStatus | None = Field(
        default=None, validation_alias=AliasChoices("payment_status", "paymentStatus")
    )

    def to_order_create(self) -> OrderCreate:
        """Convert to a one-line batch.

        ``totalPrice`` is kept as the stored line total; the unit price is
        derived from it and rounded to cents for display.
        """
        unit_price = self.total_price / self.quantity if self.quantity > 0 else self.total_price
        unit_price = unit_price.quantize(CENT, rounding=ROUND_HALF_UP)
        return OrderCreate(
            order_id=self.order_id,
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            phone=self.phone,
            address=self.address,
            payment_mode=self.payment_mode,
            payment_status=self.payment_status,
            items=[
                OrderItemCreate(
                    product_id=self.product_id,
                    product_name=self.product_name,
                    quantity=self.quantity,
                    unit_price=unit_price,
                    line_total=self.total_price,
                )
            ],
        )


class OrderStatusUpdate(BaseModel):
    """Schema for PUT /orders/{order_id}/status."""

    status: OrderStatus = Field(description="Target delivery status")


class OrderCancelRequest(BaseModel):
    """Schema for a customer cancellation.

    Guests without an account confirm ownership with the order's phone number.
    """

    phone: str | None = Field(default=None, description="Phone number the order was placed with")


class StaffAssignRequest(BaseModel):
    """Schema for POST /orders/{order_id}/assign."""

    staff_id: str = Field(validation_alias=AliasChoices("staff_id", "staffId"), description="Delivery staff id")


class OrderLineResponse(BaseModel):
    """One product line inside an order group."""

    model_config = ConfigDict(from_attributes=True)

    line_id: str = Field(description="Unique line identifier")
    product_id: str = Field(description="Product identifier")
    product_name: str = Field(description="Product name")
    quantity: int = Field(description="Units ordered")
    unit_price: Money = Field(description="Price of one unit")
    line_total: Money = Field(description="quantity x unit_price")


class OrderResponse(BaseModel):
    """Schema for an aggregated order (all lines sharing one order id)."""

    model_config = ConfigDict(from_attributes=True)

    order_id: str = Field(description="Human-readable order identifier")
    customer_name: str = Field(description="Customer name")
    customer_email: str | None = Field(default=None, description="Customer email")
    phone: str = Field(description="Customer phone")
    address: str = Field(description="Delivery address")
    payment_mode: PaymentMode = Field(description="Payment mode")
    payment_status: PaymentStatus = Field(description="Payment status")
    payment_reference: str | None = Field(default=None, description="Gateway payment id")
    status: OrderStatus = Field(description="Delivery status")
    products: list[OrderLineResponse] = Field(description="Order lines")
    total: Money = Field(description="Sum of line totals")
    total_units: int = Field(description="Total units across lines")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    model_config = ConfigDict(from_attributes=True)

    items: list[OrderResponse] = Field(description="Orders, newest first")
    total: int = Field(description="Number of orders returned")


class TrackingStep(BaseModel):
    """One step of the delivery timeline."""

    status: OrderStatus
    label: str
    description: str
    completed: bool
    current: bool


class StaffAssignmentResponse(BaseModel):
    """Delivery person attached to an order."""

    model_config = ConfigDict(from_attributes=True)

    order_id: str
    staff_id: str
    staff_name: str
    staff_phone: str
    staff_email: str | None = None
    assigned_at: datetime


class OrderTrackingResponse(BaseModel):
    """Schema for GET /orders/{order_id}/tracking."""

    order: OrderResponse
    steps: list[TrackingStep]
    can_cancel: bool = Field(description="Whether the customer may still cancel")
    assignment: StaffAssignmentResponse | None = None
