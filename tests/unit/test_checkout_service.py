"""Unit tests for CheckoutService."""

from decimal import Decimal
from typing import Any

import pytest
from postgrest.exceptions import APIError as PostgrestAPIError

from src.api.middleware.error_handler import (
    EmptyCartError,
    InsufficientPointsError,
    PartialBatchError,
    PaymentReconciliationError,
    ValidationError,
)
from src.models.order import PaymentMode
from src.schemas.checkout import CartItem, CheckoutRequest
from src.services.checkout_service import CheckoutService

EMAIL = "asha@example.com"

PRODUCTS = [
    {"id": "p-orange", "name": "Orange Juice", "price": 100, "active": True},
    {"id": "p-mango", "name": "Mango Shake", "price": "80.50", "active": True},
    {"id": "p-old", "name": "Retired Blend", "price": 60, "active": False},
]


def _echo_order_insert(supabase_stub) -> None:
    """Make inserts into orders return the submitted rows with line ids."""

    def execute() -> Any:
        rows = supabase_stub.table("orders").insert.call_args.args[0]
        response = type("Response", (), {})()
        response.data = [{**row, "id": index + 1} for index, row in enumerate(rows)]
        return response

    supabase_stub.query("orders", "insert").execute.side_effect = execute


@pytest.fixture
def checkout_service(supabase_stub) -> CheckoutService:
    """Create CheckoutService backed by the Supabase stub."""
    supabase_stub.respond("products", "select", PRODUCTS)
    return CheckoutService()


@pytest.fixture
def checkout_request() -> CheckoutRequest:
    """A checkout for two orange juices paid in cash."""
    return CheckoutRequest(
        items=[CartItem(product_id="p-orange", quantity=2)],
        use_points=True,
        customer_name="Asha Rao",
        phone="9876543210",
        address="12 MG Road, Pune",
        payment_mode=PaymentMode.CASH,
    )


class TestQuote:
    """Tests for quote method."""

    @pytest.mark.asyncio
    async def test_prices_come_from_catalog(self, checkout_service: CheckoutService) -> None:
        """Test subtotal and fee for a guest cart."""
        quote = await checkout_service.quote(
            [CartItem(product_id="p-orange", quantity=1), CartItem(product_id="p-mango", quantity=2)]
        )

        assert quote["subtotal"] == Decimal("261.00")
        assert quote["total_units"] == 3
        assert quote["delivery_fee"] == Decimal("20")
        assert quote["payable"] == Decimal("281.00")
        assert quote["points_to_earn"] == 0
        assert quote["points_to_redeem"] == 0

    @pytest.mark.asyncio
    async def test_redemption_is_capped_by_balance(
        self, checkout_service: CheckoutService, supabase_stub
    ) -> None:
        """Test balance 50 against a 200 subtotal."""
        supabase_stub.respond("loyalty_accounts", "select", [{"email": EMAIL, "balance": 50}])

        quote = await checkout_service.quote(
            [CartItem(product_id="p-orange", quantity=2)], email=EMAIL, use_points=True
        )

        assert quote["subtotal"] == Decimal("200")
        assert quote["points_to_redeem"] == 50
        assert quote["discount"] == Decimal("50")
        assert quote["payable"] == Decimal("170")
        assert quote["points_to_earn"] == 2

    @pytest.mark.asyncio
    async def test_redemption_is_capped_by_subtotal(
        self, checkout_service: CheckoutService, supabase_stub
    ) -> None:
        """Test a balance larger than the subtotal."""
        supabase_stub.respond("loyalty_accounts", "select", [{"email": EMAIL, "balance": 500}])

        quote = await checkout_service.quote(
            [CartItem(product_id="p-orange", quantity=1)], email=EMAIL, use_points=True
        )

        assert quote["points_to_redeem"] == 100
        assert quote["payable"] == Decimal("20")

    @pytest.mark.asyncio
    async def test_repeated_products_are_merged(self, checkout_service: CheckoutService) -> None:
        """Test that the same product twice becomes one line."""
        quote = await checkout_service.quote(
            [CartItem(product_id="p-orange", quantity=1), CartItem(product_id="p-orange", quantity=2)]
        )

        assert len(quote["lines"]) == 1
        assert quote["lines"][0]["quantity"] == 3

    @pytest.mark.asyncio
    async def test_empty_cart_raises(self, checkout_service: CheckoutService) -> None:
        """Test EmptyCartError."""
        with pytest.raises(EmptyCartError):
            await checkout_service.quote([])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("product_id", ["p-missing", "p-old"])
    async def test_unavailable_product_raises(self, checkout_service: CheckoutService, product_id: str) -> None:
        """Test unknown and inactive products."""
        with pytest.raises(ValidationError):
            await checkout_service.quote([CartItem(product_id=product_id, quantity=1)])

    @pytest.mark.asyncio
    async def test_zero_quantity_raises(self, checkout_service: CheckoutService) -> None:
        """Test quantity validation."""
        with pytest.raises(ValidationError):
            await checkout_service.quote([CartItem(product_id="p-orange", quantity=0)])


class TestPlaceOrder:
    """Tests for place_order method."""

    @pytest.mark.asyncio
    async def test_redeems_before_accruing(
        self, checkout_service: CheckoutService, supabase_stub, checkout_request: CheckoutRequest
    ) -> None:
        """Test balance 50, two items at 100: pay 170, end with 2 points."""
        _echo_order_insert(supabase_stub)
        supabase_stub.respond(
            "loyalty_accounts",
            "select",
            [{"email": EMAIL, "balance": 50}],
            [{"email": EMAIL, "balance": 50}],
            [{"email": EMAIL, "balance": 0}],
        )
        supabase_stub.respond("loyalty_accounts", "update", [{"email": EMAIL, "balance": 0}])

        result = await checkout_service.place_order(checkout_request, email=EMAIL)

        assert result["quote"]["payable"] == Decimal("170")
        assert result["points_redeemed"] == 50
        assert result["points_earned"] == 2
        assert result["loyalty_balance"] == 2

        entries = [c.args[0] for c in supabase_stub.table("loyalty_ledger").insert.call_args_list]
        assert [(e["kind"], e["balance_before"], e["balance_after"]) for e in entries] == [
            ("redeem", 50, 0),
            ("accrue", 0, 2),
        ]
        assert all(e["order_id"] == result["order"]["order_id"] for e in entries)

    @pytest.mark.asyncio
    async def test_guest_checkout_skips_loyalty(
        self, checkout_service: CheckoutService, supabase_stub, checkout_request: CheckoutRequest
    ) -> None:
        """Test that orders without an email never touch the ledger."""
        _echo_order_insert(supabase_stub)

        result = await checkout_service.place_order(checkout_request)

        assert result["points_earned"] == 0
        assert result["quote"]["payable"] == Decimal("220")
        supabase_stub.table("loyalty_ledger").insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_redemption_removes_order(
        self, checkout_service: CheckoutService, supabase_stub, checkout_request: CheckoutRequest
    ) -> None:
        """Test compensation when the balance dropped after quoting."""
        _echo_order_insert(supabase_stub)
        supabase_stub.respond(
            "loyalty_accounts",
            "select",
            [{"email": EMAIL, "balance": 50}],
            [{"email": EMAIL, "balance": 10}],
        )
        supabase_stub.respond("orders", "delete", [{"order_id": "OJ-000001"}])

        with pytest.raises(InsufficientPointsError):
            await checkout_service.place_order(checkout_request, email=EMAIL)

        supabase_stub.table("orders").delete.assert_called_once()
        supabase_stub.table("loyalty_ledger").insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_paid_order_failure_reports_payment_reference(
        self, checkout_service: CheckoutService, supabase_stub, checkout_request: CheckoutRequest
    ) -> None:
        """Test the reconciliation error after a successful online payment."""
        supabase_stub.respond("orders", "insert", RuntimeError("database unavailable"))
        paid = checkout_request.model_copy(
            update={"payment_mode": PaymentMode.ONLINE, "payment_reference": "pay_ABC123"}
        )

        with pytest.raises(PaymentReconciliationError) as exc_info:
            await checkout_service.place_order(paid)

        assert "pay_ABC123" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, PartialBatchError)

    @pytest.mark.asyncio
    async def test_cash_order_failure_is_not_escalated(
        self, checkout_service: CheckoutService, supabase_stub, checkout_request: CheckoutRequest
    ) -> None:
        """Test that unpaid orders surface the original error."""
        supabase_stub.respond("orders", "insert", RuntimeError("database unavailable"))

        with pytest.raises(PartialBatchError):
            await checkout_service.place_order(checkout_request)

    @pytest.mark.asyncio
    async def test_retry_reports_first_attempts_redemption(
        self,
        checkout_service: CheckoutService,
        supabase_stub,
        make_order_row,
        checkout_request: CheckoutRequest,
    ) -> None:
        """Test that a retried checkout reports what the first attempt charged."""
        supabase_stub.respond("orders", "select", [make_order_row(order_id="OJ-654321")])
        supabase_stub.respond(
            "loyalty_ledger",
            "select",
            [
                {"kind": "redeem", "points": 50, "balance_before": 50, "balance_after": 0, "order_id": "OJ-654321"},
                {"kind": "accrue", "points": 2, "balance_before": 0, "balance_after": 2, "order_id": "OJ-654321"},
            ],
        )
        supabase_stub.respond(
            "loyalty_grants",
            "insert",
            PostgrestAPIError({"message": "duplicate key", "code": "23505", "hint": None, "details": None}),
        )
        supabase_stub.respond("loyalty_accounts", "select", [{"email": EMAIL, "balance": 2}])
        retry = checkout_request.model_copy(update={"order_id": "OJ-654321"})

        result = await checkout_service.place_order(retry, email=EMAIL)

        assert result["order"]["order_id"] == "OJ-654321"
        assert result["points_redeemed"] == 50
        assert result["points_earned"] == 2
        assert result["loyalty_balance"] == 2
        assert result["quote"]["loyalty_balance"] == 50
        assert result["quote"]["discount"] == Decimal("50")
        assert result["quote"]["payable"] == Decimal("170")
        supabase_stub.table("orders").insert.assert_not_called()
        supabase_stub.table("loyalty_accounts").update.assert_not_called()
        supabase_stub.table("loyalty_ledger").insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_with_another_phone_is_rejected(
        self,
        checkout_service: CheckoutService,
        supabase_stub,
        make_order_row,
        checkout_request: CheckoutRequest,
    ) -> None:
        """Test that an order id cannot be reused by a different checkout."""
        supabase_stub.respond("orders", "select", [make_order_row(order_id="OJ-654321", phone="9000000000")])
        retry = checkout_request.model_copy(update={"order_id": "OJ-654321"})

        with pytest.raises(ValidationError):
            await checkout_service.place_order(retry, email=EMAIL)

        supabase_stub.table("loyalty_accounts").update.assert_not_called()
