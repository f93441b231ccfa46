"""Unit tests for loyalty point arithmetic."""

from decimal import Decimal

import pytest

from src.api.middleware.error_handler import InsufficientPointsError, ValidationError
from src.services.loyalty_rules import (
    apply_accrual,
    apply_redemption,
    discount_for_points,
    max_redeemable,
    points_for_units,
    validate_redemption,
)


class TestAccrual:
    """Tests for earning points."""

    def test_one_point_per_unit(self) -> None:
        """Test the accrual rate."""
        assert points_for_units(3) == 3
        assert points_for_units(0) == 0
        assert apply_accrual(5, 3) == 8

    def test_negative_units_rejected(self) -> None:
        """Test that negative units raise ValidationError."""
        with pytest.raises(ValidationError):
            points_for_units(-1)


class TestMaxRedeemable:
    """Tests for the redemption cap."""

    @pytest.mark.parametrize(
        "balance,subtotal,expected",
        [
            (50, Decimal("200"), 50),
            (500, Decimal("200"), 200),
            (500, Decimal("99.50"), 99),
            (0, Decimal("200"), 0),
            (50, Decimal("0"), 0),
        ],
    )
    def test_is_lesser_of_balance_and_subtotal(self, balance: int, subtotal: Decimal, expected: int) -> None:
        """Test min(balance, subtotal) with whole points."""
        assert max_redeemable(balance, subtotal) == expected

    def test_one_point_is_one_currency_unit(self) -> None:
        """Test the conversion rate."""
        assert discount_for_points(50) == Decimal("50")


class TestRedemption:
    """Tests for spending points."""

    def test_subtracts_points(self) -> None:
        """Test a valid redemption."""
        assert apply_redemption(50, 50, Decimal("200")) == 0

    def test_more_than_balance_raises_insufficient_points(self) -> None:
        """Test overspending the balance."""
        with pytest.raises(InsufficientPointsError) as exc_info:
            apply_redemption(10, 11)
        assert exc_info.value.status_code == 409
        assert exc_info.value.balance == 10
        assert exc_info.value.requested == 11

    def test_negative_points_raise_validation_error(self) -> None:
        """Test negative redemption."""
        with pytest.raises(ValidationError):
            validate_redemption(10, -1)

    def test_more_than_subtotal_raises_validation_error(self) -> None:
        """Test that a discount cannot exceed the subtotal."""
        with pytest.raises(ValidationError):
            validate_redemption(500, 201, Decimal("200"))

    def test_zero_points_is_allowed_on_empty_balance(self) -> None:
        """Test redeeming nothing."""
        assert apply_redemption(0, 0) == 0
