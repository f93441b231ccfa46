"""Order API routes: creation, tracking, status and cancellation."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, Query, Response, status
from pydantic import ValidationError as PydanticValidationError

from src.api.deps import AdminUser, CurrentUser, OptionalUser
from src.api.middleware.error_handler import AuthorizationError, ValidationError
from src.core.config import get_settings
from src.models.order import OrderStatus, PaymentMode
from src.schemas.auth import UserContext
from src.schemas.order import (
    OrderCancelRequest,
    OrderCreate,
    OrderLineCreateRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderTrackingResponse,
    StaffAssignRequest,
    StaffAssignmentResponse,
)
from src.services.order_lifecycle import normalize_phone
from src.services.order_service import OrderService
from src.services.staff_service import StaffService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description=(
        "Creates an order. Accepts a full batch with an `items` list, or a single "
        "line (`productId`, `quantity`, `totalPrice`) sharing an `orderId` with "
        "other lines of the same checkout."
    ),
)
async def create_order(
    payload: Annotated[dict[str, Any], Body()],
    user: OptionalUser,
) -> OrderResponse:
    """Create an order batch or add one line to an order.

    Args:
        payload: Batch or single-line order body.
        user: Optional authenticated customer; their email keys loyalty points.

    Returns:
        OrderResponse: The order as stored.
    """
    service = OrderService()

    try:
        if "items" in payload:
            data = OrderCreate.model_validate(payload)
            single_line = False
        else:
            data = OrderLineCreateRequest.model_validate(payload).to_order_create()
            single_line = True
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid order body",
            details=[
                {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ],
        ) from e

    if user and user.email:
        data = data.model_copy(update={"customer_email": user.email})

    order = await service.add_line(data) if single_line else await service.create_order(data)
    return OrderResponse(**order)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List orders",
    description="Admins see every order with filters; customers see their own orders.",
)
async def list_orders(
    user: CurrentUser,
    status_filter: Annotated[OrderStatus | None, Query(alias="status", description="Delivery status")] = None,
    payment_mode: Annotated[PaymentMode | None, Query(description="cash or online")] = None,
    period: Annotated[str | None, Query(pattern="^(week|month|year)$", description="Time window")] = None,
    since: Annotated[datetime | None, Query(description="Only orders created after this time")] = None,
    search: Annotated[str | None, Query(max_length=100, description="Search id, name, phone, product")] = None,
) -> OrderListResponse:
    """List orders newest first.

    Args:
        user: Authenticated user.
        status_filter: Optional status filter.
        payment_mode: Optional payment mode filter.
        period: Optional named time window.
        since: Optional explicit lower bound on creation time.
        search: Optional free-text search.

    Returns:
        OrderListResponse: Matching orders.
    """
    service = OrderService()

    customer_email = None
    if not _is_admin(user):
        if not user.email:
            return OrderListResponse(items=[], total=0)
        customer_email = user.email

    orders = await service.list_orders(
        status=status_filter,
        payment_mode=payment_mode,
        period=period,
        since=since,
        customer_email=customer_email,
        search=search,
    )
    return OrderListResponse(items=[OrderResponse(**order) for order in orders], total=len(orders))


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="Returns all lines of one order aggregated into a single view.",
)
async def get_order(order_id: str) -> OrderResponse:
    """Get a single order by its order id.

    Raises:
        NotFoundError: 404 if the order does not exist.
    """
    service = OrderService()
    order = await service.get_order(order_id)
    return OrderResponse(**order)


@router.get(
    "/{order_id}/tracking",
    response_model=OrderTrackingResponse,
    summary="Track order",
    description="Returns the order with its delivery timeline and assigned delivery staff.",
)
async def track_order(order_id: str) -> OrderTrackingResponse:
    """Get the delivery timeline for an order."""
    service = OrderService()
    tracking = await service.get_tracking(order_id)
    return OrderTrackingResponse(
        order=OrderResponse(**tracking["order"]),
        steps=tracking["steps"],
        can_cancel=tracking["can_cancel"],
        assignment=StaffAssignmentResponse(**tracking["assignment"]) if tracking["assignment"] else None,
    )


@router.put(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
    description="Moves every line of the order forward to the given status. Admin only.",
)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    admin: AdminUser,
) -> OrderResponse:
    """Advance an order's delivery status.

    Raises:
        NotFoundError: 404 if the order does not exist.
        InvalidStateError: 409 if the transition would move backwards.
    """
    service = OrderService()
    order = await service.update_status(order_id, data.status)

    if data.status == OrderStatus.DELIVERED:
        await StaffService().release_order(order_id)

    return OrderResponse(**order)


@router.post(
    "/{order_id}/cancel",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel order",
    description="Cancels an order that has not started preparation. Guests confirm with the order's phone number.",
)
async def cancel_order(
    order_id: str,
    user: OptionalUser,
    data: OrderCancelRequest | None = None,
) -> Response:
    """Cancel an order while it is still ``received``.

    Raises:
        NotFoundError: 404 if the order does not exist.
        AuthorizationError: 403 if the caller does not own the order.
        InvalidStateError: 409 if the order has advanced past received.
    """
    service = OrderService()
    order = await service.get_order(order_id)
    _ensure_owner(order, user, data.phone if data else None)

    await service.cancel_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete order",
    description="Removes an order in any status. Admin only.",
)
async def delete_order(order_id: str, admin: AdminUser) -> Response:
    """Delete all lines of an order and free its delivery staff."""
    await OrderService().delete_order(order_id)
    await StaffService().release_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{order_id}/assign",
    response_model=StaffAssignmentResponse,
    summary="Assign delivery staff",
    description="Sends the order out for delivery with an available staff member. Admin only.",
)
async def assign_staff(
    order_id: str,
    data: StaffAssignRequest,
    admin: AdminUser,
) -> StaffAssignmentResponse:
    """Assign a delivery staff member to an order."""
    assignment = await StaffService().assign_order(order_id, data.staff_id)
    return StaffAssignmentResponse(**assignment)


def _is_admin(user: UserContext | None) -> bool:
    return bool(user and user.is_admin(get_settings().admin_role))


def _ensure_owner(order: dict[str, Any], user: UserContext | None, phone: str | None) -> None:
    """Allow admins, the customer whose email is on the order, or a matching phone."""
    if _is_admin(user):
        return
    if user and user.email and order.get("customer_email") == user.email.lower():
        return
    if phone:
        try:
            if normalize_phone(phone) == order["phone"]:
                return
        except ValidationError:
            pass
    raise AuthorizationError("Not authorized to cancel this order")
