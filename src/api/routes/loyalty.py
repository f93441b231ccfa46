"""Loyalty points API routes."""

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser, ensure_email_access
from src.api.middleware.error_handler import AuthorizationError, ValidationError
from src.core.config import get_settings
from src.schemas.loyalty import (
    LedgerEntryResponse,
    LoyaltySummaryResponse,
    PointsBalanceResponse,
    PointsChangeRequest,
    PointsChangeResponse,
)
from src.services.loyalty_service import LoyaltyService
from src.services.order_service import OrderService

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get(
    "/points/{email}",
    response_model=PointsBalanceResponse,
    summary="Get points balance",
    description="Returns the customer's current loyalty balance; 0 for customers without points.",
)
async def get_points(email: str, user: CurrentUser) -> PointsBalanceResponse:
    """Get a customer's loyalty balance.

    Raises:
        AuthorizationError: 403 if the caller is neither the customer nor an admin.
    """
    ensure_email_access(user, email)
    balance = await LoyaltyService().get_balance(email)
    return PointsBalanceResponse(email=email.strip().lower(), loyalty_points=balance)


@router.get(
    "/summary/{email}",
    response_model=LoyaltySummaryResponse,
    summary="Get loyalty summary",
    description="Balance with lifetime earned and redeemed totals and recent history.",
)
async def get_summary(
    email: str,
    user: CurrentUser,
    limit: int = Query(default=20, ge=1, le=100, description="History entries to return"),
) -> LoyaltySummaryResponse:
    """Get balance, totals and recent ledger entries for a customer."""
    ensure_email_access(user, email)
    service = LoyaltyService()
    summary = await service.get_summary(email)
    history = await service.get_history(email, limit=limit)
    return LoyaltySummaryResponse(
        **summary,
        history=[LedgerEntryResponse(**entry) for entry in history],
    )


@router.post(
    "/add-points",
    response_model=PointsChangeResponse,
    summary="Add points",
    description=(
        "Accrues points for ordered units. Customers may only claim points for "
        "their own order, and the points are taken from that order."
    ),
)
async def add_points(data: PointsChangeRequest, user: CurrentUser) -> PointsChangeResponse:
    """Accrue loyalty points.

    Raises:
        AuthorizationError: 403 if the caller may not change this balance.
        ValidationError: 422 if points are negative or a customer omits the order id.
    """
    ensure_email_access(user, data.email)
    units = data.points

    if not user.is_admin(get_settings().admin_role):
        order = await _customer_order(data)
        units = order["total_units"]

    balance = await LoyaltyService().accrue(data.email, units, order_id=data.order_id)
    return PointsChangeResponse(email=data.email.strip().lower(), loyalty_points=balance)


@router.post(
    "/redeem-points",
    response_model=PointsChangeResponse,
    summary="Redeem points",
    description=(
        "Spends points as a discount. Customers redeem against one of their own "
        "orders, capped by that order's total. Fails with 409 when the balance is too low."
    ),
)
async def redeem_points(data: PointsChangeRequest, user: CurrentUser) -> PointsChangeResponse:
    """Redeem loyalty points.

    Raises:
        AuthorizationError: 403 if the caller may not change this balance.
        ValidationError: 422 if a customer omits the order id or points exceed the order total.
        InsufficientPointsError: 409 if points exceed the balance.
    """
    ensure_email_access(user, data.email)
    order_subtotal = data.order_subtotal

    if not user.is_admin(get_settings().admin_role):
        order = await _customer_order(data)
        order_subtotal = order["total"]

    balance = await LoyaltyService().redeem(
        data.email,
        data.points,
        order_subtotal=order_subtotal,
        order_id=data.order_id,
    )
    return PointsChangeResponse(email=data.email.strip().lower(), loyalty_points=balance)


async def _customer_order(data: PointsChangeRequest) -> dict:
    """Load the order a customer's points change refers to."""
    if not data.order_id:
        raise ValidationError("orderId is required to change points")
    order = await OrderService().get_order(data.order_id)
    if order.get("customer_email") != data.email.strip().lower():
        raise AuthorizationError("Order does not belong to this customer")
    return order
