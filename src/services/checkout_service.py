"""Checkout orchestration: pricing, order creation and loyalty points."""

import logging
from decimal import Decimal
from typing import Any

from src.api.middleware.error_handler import (
    APIError,
    EmptyCartError,
    PaymentReconciliationError,
    ValidationError,
)
from src.core.config import get_settings
from src.models.loyalty import LedgerEntryKind
from src.models.order import PaymentMode
from src.schemas.checkout import CartItem, CheckoutRequest
from src.schemas.order import OrderCreate, OrderItemCreate
from src.services.loyalty_rules import discount_for_points, max_redeemable, points_for_units
from src.services.loyalty_service import LoyaltyService
from src.services.order_lifecycle import normalize_phone, to_decimal
from src.services.order_service import OrderService
from src.services.product_service import ProductService

logger = logging.getLogger(__name__)


class CheckoutService:
    """Service composing the catalog, order lifecycle and loyalty ledger."""

    def __init__(self) -> None:
        """Initialize checkout service with its collaborating services."""
        self.settings = get_settings()
        self.order_service = OrderService()
        self.loyalty_service = LoyaltyService()
        self.product_service = ProductService()

    async def quote(
        self,
        items: list[CartItem],
        email: str | None = None,
        use_points: bool = False,
    ) -> dict[str, Any]:
        """Price a cart with the optional loyalty discount and delivery fee.

        Prices come from the catalog, never from the client. The redeemable
        amount uses the balance before this order's own accrual.

        Args:
            items: Cart contents.
            email: Customer email, required to use points.
            use_points: Whether to redeem points against the subtotal.

        Returns:
            dict: Priced lines and totals.

        Raises:
            EmptyCartError: If the cart is empty.
            ValidationError: If a product is unknown, inactive or a quantity is below 1.
        """
        if not items:
            raise EmptyCartError()
        for item in items:
            if item.quantity < 1:
                raise ValidationError(f"Quantity for product {item.product_id} must be at least 1")

        products = await self.product_service.get_products_by_ids([item.product_id for item in items])

        lines: list[dict[str, Any]] = []
        for item in _merge_cart(items):
            product = products.get(item.product_id)
            if not product or not product.get("active", True):
                raise ValidationError(f"Product {item.product_id} is not available")

            unit_price = to_decimal(product["price"])
            lines.append(
                {
                    "product_id": item.product_id,
                    "product_name": product["name"],
                    "quantity": item.quantity,
                    "unit_price": unit_price,
                    "line_total": unit_price * item.quantity,
                }
            )

        subtotal = sum((line["line_total"] for line in lines), Decimal("0"))
        total_units = sum(line["quantity"] for line in lines)

        balance = await self.loyalty_service.get_balance(email) if email else 0
        points_to_redeem = max_redeemable(balance, subtotal) if use_points and email else 0
        discount = discount_for_points(points_to_redeem)
        delivery_fee = self.settings.delivery_fee

        return {
            "lines": lines,
            "subtotal": subtotal,
            "total_units": total_units,
            "loyalty_balance": balance,
            "points_to_redeem": points_to_redeem,
            "discount": discount,
            "delivery_fee": delivery_fee,
            "payable": subtotal - discount + delivery_fee,
            "points_to_earn": points_for_units(total_units) if email else 0,
        }

    async def place_order(self, data: CheckoutRequest, email: str | None = None) -> dict[str, Any]:
        """Create the order, then redeem and accrue points for it.

        Loyalty changes only happen once the order exists, and both are keyed
        by the order id so a retried checkout neither redeems nor accrues
        twice. If redemption fails the order is removed again.

        Args:
            data: Checkout form and cart.
            email: Authenticated customer email, if any.

        Returns:
            dict: The order, the quote it was priced with and loyalty results.

        Raises:
            ValidationError: If ``order_id`` already belongs to another checkout.
            PaymentReconciliationError: If an online payment went through but
                the order could not be stored.
        """
        if email and data.order_id:
            replayed = await self._replay(data, email)
            if replayed is not None:
                return replayed

        try:
            quote = await self.quote(data.items, email=email, use_points=data.use_points)
            order = await self.order_service.create_order(self._build_batch(data, email, quote))
        except APIError as e:
            self._raise_if_paid(data, data.order_id or "unassigned", e)
            raise

        points_redeemed = 0
        balance = quote["loyalty_balance"]
        if email and quote["points_to_redeem"] > 0:
            try:
                balance = await self.loyalty_service.redeem(
                    email,
                    quote["points_to_redeem"],
                    order_subtotal=quote["subtotal"],
                    order_id=order["order_id"],
                )
            except APIError as e:
                logger.warning("Redemption failed for order %s, removing order: %s", order["order_id"], e.message)
                await self.order_service.delete_order(order["order_id"])
                self._raise_if_paid(data, order["order_id"], e)
                raise
            points_redeemed = quote["points_to_redeem"]

        points_earned = 0
        if email:
            balance = await self.loyalty_service.accrue(email, order["total_units"], order_id=order["order_id"])
            points_earned = points_for_units(order["total_units"])

        logger.info(
            "Checkout complete for order %s: payable %s, redeemed %d, earned %d",
            order["order_id"],
            quote["payable"],
            points_redeemed,
            points_earned,
        )

        return {
            "order": order,
            "quote": quote,
            "points_redeemed": points_redeemed,
            "points_earned": points_earned,
            "loyalty_balance": balance,
        }

    async def _replay(self, data: CheckoutRequest, email: str) -> dict[str, Any] | None:
        """Report a retried checkout from what the first attempt recorded.

        Returns None when the order does not exist yet or no loyalty change
        was recorded for it, so the regular checkout runs.
        """
        order = await self.order_service.find_order(data.order_id)
        if order is None:
            return None
        if order["phone"] != normalize_phone(data.phone) or order.get("customer_email") != email.strip().lower():
            raise ValidationError(f"Order id {data.order_id} is already in use")

        entries = await self.loyalty_service.get_order_entries(email, order["order_id"])
        if not entries:
            return None
        redemption = entries.get(LedgerEntryKind.REDEEM.value)
        first_entry = redemption or entries[LedgerEntryKind.ACCRUE.value]

        balance = await self.loyalty_service.accrue(email, order["total_units"], order_id=order["order_id"])
        points_redeemed = int(redemption["points"]) if redemption else 0
        points_earned = points_for_units(order["total_units"])
        discount = discount_for_points(points_redeemed)
        delivery_fee = self.settings.delivery_fee
        quote = {
            "lines": order["products"],
            "subtotal": order["total"],
            "total_units": order["total_units"],
            "loyalty_balance": int(first_entry["balance_before"]),
            "points_to_redeem": points_redeemed,
            "discount": discount,
            "delivery_fee": delivery_fee,
            "payable": order["total"] - discount + delivery_fee,
            "points_to_earn": points_earned,
        }
        logger.info("Checkout for order %s already placed, reporting recorded totals", order["order_id"])

        return {
            "order": order,
            "quote": quote,
            "points_redeemed": points_redeemed,
            "points_earned": points_earned,
            "loyalty_balance": balance,
        }

    @staticmethod
    def _build_batch(
        data: CheckoutRequest,
        email: str | None,
        quote: dict[str, Any],
    ) -> OrderCreate:
        return OrderCreate(
            order_id=data.order_id,
            customer_name=data.customer_name,
            customer_email=email,
            phone=data.phone,
            address=data.address,
            payment_mode=data.payment_mode,
            payment_reference=data.payment_reference,
            items=[
                OrderItemCreate(
                    product_id=line["product_id"],
                    product_name=line["product_name"],
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                )
                for line in quote["lines"]
            ],
        )

    @staticmethod
    def _raise_if_paid(data: CheckoutRequest, order_id: str, error: APIError) -> None:
        """Escalate failures after a successful online payment for manual reconciliation."""
        if data.payment_mode == PaymentMode.ONLINE and data.payment_reference:
            logger.error(
                "Payment %s succeeded but order %s failed: %s",
                data.payment_reference,
                order_id,
                error.message,
            )
            raise PaymentReconciliationError(data.payment_reference, order_id) from error


def _merge_cart(items: list[CartItem]) -> list[CartItem]:
    """Combine repeated products into one line, keeping first-seen order."""
    merged: dict[str, CartItem] = {}
    for item in items:
        if item.product_id in merged:
            merged[item.product_id] = CartItem(
                product_id=item.product_id,
                quantity=merged[item.product_id].quantity + item.quantity,
            )
        else:
            merged[item.product_id] = item
    return list(merged.values())
