"""Loyalty point arithmetic.

One point is earned per unit ordered and is worth one currency unit of
discount. Redemption is capped by both the balance and the subtotal
being discounted.
"""

from decimal import ROUND_FLOOR, Decimal

from src.api.middleware.error_handler import InsufficientPointsError, ValidationError

POINTS_PER_UNIT = 1
POINT_VALUE = Decimal("1")


def points_for_units(units: int) -> int:
    """Points earned for ``units`` product units."""
    if units < 0:
        raise ValidationError(
            "Units ordered cannot be negative",
            details=[{"loc": ["points"], "msg": "must be >= 0", "type": "value_error"}],
        )
    return units * POINTS_PER_UNIT


def max_redeemable(balance: int, subtotal: Decimal) -> int:
    """Largest redemption allowed against ``subtotal``: min(balance, subtotal)."""
    if balance <= 0 or subtotal <= 0:
        return 0
    subtotal_points = int((subtotal / POINT_VALUE).to_integral_value(rounding=ROUND_FLOOR))
    return min(balance, subtotal_points)


def discount_for_points(points: int) -> Decimal:
    """Currency value of ``points``."""
    return Decimal(points) * POINT_VALUE


def check_redemption_request(points: int, order_subtotal: Decimal | None = None) -> None:
    """Check the parts of a redemption that do not depend on the balance.

    Raises:
        ValidationError: If points is negative or exceeds the order subtotal.
    """
    if points < 0:
        raise ValidationError(
            "Points to redeem cannot be negative",
            details=[{"loc": ["points"], "msg": "must be >= 0", "type": "value_error"}],
        )
    if order_subtotal is not None and discount_for_points(points) > order_subtotal:
        raise ValidationError(
            "Cannot redeem more points than the order subtotal",
            details=[
                {"loc": ["points"], "msg": f"must be <= {order_subtotal}", "type": "redemption_cap"}
            ],
        )


def validate_redemption(balance: int, points: int, order_subtotal: Decimal | None = None) -> None:
    """Check a redemption against the subtotal cap and the balance.

    Raises:
        ValidationError: If points is negative or exceeds the order subtotal.
        InsufficientPointsError: If points exceeds the balance.
    """
    check_redemption_request(points, order_subtotal)
    if points > balance:
        raise InsufficientPointsError(balance=balance, requested=points)


def apply_accrual(balance: int, points: int) -> int:
    """Balance after adding ``points``."""
    return balance + points


def apply_redemption(balance: int, points: int, order_subtotal: Decimal | None = None) -> int:
    """Balance after spending ``points``; validates first so the result is never negative."""
    validate_redemption(balance, points, order_subtotal)
    return balance - points
