"""Unit tests for ProductService and FeedbackService."""

import pytest

from src.schemas.feedback import FeedbackCreate
from src.services.feedback_service import FeedbackService
from src.services.product_service import ProductService


class TestProductService:
    """Tests for ProductService."""

    @pytest.mark.asyncio
    async def test_lists_only_active_products(self, supabase_stub) -> None:
        """Test list filters."""
        await ProductService().list_products(category="smoothies", popular=True)

        query = supabase_stub.query("products", "select")
        query.eq.assert_any_call("active", True)
        query.eq.assert_any_call("category", "smoothies")
        query.eq.assert_any_call("popular", True)
        query.order.assert_called_once_with("name")

    @pytest.mark.asyncio
    async def test_get_products_by_ids_keys_by_id(self, supabase_stub) -> None:
        """Test batch lookup."""
        supabase_stub.respond("products", "select", [{"id": 7, "name": "Beet Boost"}])

        products = await ProductService().get_products_by_ids(["7", "7"])

        assert list(products) == ["7"]
        supabase_stub.query("products", "select").in_.assert_called_once_with("id", ["7"])

    @pytest.mark.asyncio
    async def test_get_product_missing_returns_none(self, supabase_stub) -> None:
        """Test unknown product id."""
        assert await ProductService().get_product("p-none") is None


class TestFeedbackService:
    """Tests for FeedbackService."""

    @pytest.mark.asyncio
    async def test_create_normalizes_email(self, supabase_stub) -> None:
        """Test stored feedback fields."""
        supabase_stub.respond("feedbacks", "insert", [{"id": "f-1"}])

        await FeedbackService().create_feedback(
            FeedbackCreate(name=" Asha ", email="Asha@Example.com", rating=5, message=" Lovely! ")
        )

        row = supabase_stub.table("feedbacks").insert.call_args.args[0]
        assert row["name"] == "Asha"
        assert row["email"] == "asha@example.com"
        assert row["message"] == "Lovely!"

    @pytest.mark.asyncio
    async def test_stats_average_and_counts(self, supabase_stub) -> None:
        """Test rating statistics."""
        supabase_stub.respond("feedbacks", "select", [{"rating": 5}, {"rating": 4}, {"rating": 4}])

        stats = await FeedbackService().get_stats()

        assert stats["total"] == 3
        assert stats["average_rating"] == 4.3
        assert stats["rating_counts"] == {5: 1, 4: 2, 3: 0, 2: 0, 1: 0}

    @pytest.mark.asyncio
    async def test_stats_without_feedback(self, supabase_stub) -> None:
        """Test empty statistics."""
        stats = await FeedbackService().get_stats()

        assert stats["total"] == 0
        assert stats["average_rating"] == 0.0
