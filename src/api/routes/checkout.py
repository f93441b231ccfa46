"""Checkout API routes."""

from fastapi import APIRouter, status

from src.api.deps import OptionalUser
from src.schemas.checkout import (
    CheckoutQuoteRequest,
    CheckoutQuoteResponse,
    CheckoutRequest,
    CheckoutResponse,
)
from src.schemas.order import OrderResponse
from src.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post(
    "/quote",
    response_model=CheckoutQuoteResponse,
    summary="Price a cart",
    description=(
        "Prices the cart from the catalog and returns subtotal, redeemable points, "
        "discount, delivery fee, payable total and the points the order will earn. "
        "Loyalty fields are only filled for signed-in customers."
    ),
)
async def quote(data: CheckoutQuoteRequest, user: OptionalUser) -> CheckoutQuoteResponse:
    """Price a cart without placing an order."""
    email = user.email if user else None
    result = await CheckoutService().quote(data.items, email=email, use_points=data.use_points)
    return CheckoutQuoteResponse(**result)


@router.post(
    "/orders",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place order",
    description=(
        "Creates the order batch, then redeems points against it and accrues points "
        "for its units. Retrying with the same orderId does not repeat either."
    ),
)
async def place_order(data: CheckoutRequest, user: OptionalUser) -> CheckoutResponse:
    """Place an order from a cart.

    Raises:
        EmptyCartError: 422 if the cart is empty.
        InsufficientPointsError: 409 if the balance dropped before redemption.
        PaymentReconciliationError: 502 if a paid order could not be saved.
    """
    email = user.email if user else None
    result = await CheckoutService().place_order(data, email=email)
    return CheckoutResponse(
        order=OrderResponse(**result["order"]),
        quote=CheckoutQuoteResponse(**result["quote"]),
        points_redeemed=result["points_redeemed"],
        points_earned=result["points_earned"],
        loyalty_balance=result["loyalty_balance"],
    )
