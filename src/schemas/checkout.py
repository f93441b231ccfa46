"""Checkout Pydantic schemas for API request/response models."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.models.order import PaymentMode
from src.schemas.common import Money
from src.schemas.order import OrderResponse


class CartItem(BaseModel):
    """One cart entry; price is looked up from the catalog."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(validation_alias=AliasChoices("product_id", "productId"), description="Product identifier")
    quantity: int = Field(description="Units to order")


class CheckoutQuoteRequest(BaseModel):
    """Schema for POST /checkout/quote."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[CartItem] = Field(default_factory=list, description="Cart contents")
    use_points: bool = Field(
        default=False,
        validation_alias=AliasChoices("use_points", "useLoyaltyPoints"),
        description="Redeem loyalty points against the subtotal",
    )


class CheckoutRequest(CheckoutQuoteRequest):
    """Schema for POST /checkout/orders."""

    order_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("order_id", "orderId"),
        description="Client-generated order id, reused on retries",
    )
    customer_name: str = Field(default="", validation_alias=AliasChoices("customer_name", "name"))
    phone: str = Field(default="")
    address: str = Field(default="")
    payment_mode: PaymentMode = Field(
        default=PaymentMode.CASH, validation_alias=AliasChoices("payment_mode", "paymentMode")
    )
    payment_reference: str | None = Field(
        default=None,
        validation_alias=AliasChoices("payment_reference", "paymentReference", "paymentId"),
        description="Gateway payment id after a successful online payment",
    )


class QuoteLine(BaseModel):
    """A priced cart line."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: Money
    line_total: Money


class CheckoutQuoteResponse(BaseModel):
    """Priced cart with loyalty discount and delivery fee."""

    lines: list[QuoteLine]
    subtotal: Money = Field(description="Sum of line totals")
    total_units: int = Field(description="Units across all lines")
    loyalty_balance: int = Field(description="Points available before this order")
    points_to_redeem: int = Field(description="Points applied as discount")
    discount: Money = Field(description="Currency value of redeemed points")
    delivery_fee: Money = Field(description="Flat delivery fee")
    payable: Money = Field(description="subtotal - discount + delivery_fee")
    points_to_earn: int = Field(description="Points this order will accrue")


class CheckoutResponse(BaseModel):
    """Result of placing an order."""

    order: OrderResponse
    quote: CheckoutQuoteResponse
    points_redeemed: int
    points_earned: int
    loyalty_balance: int = Field(description="Balance after redemption and accrual")
