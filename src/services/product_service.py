"""Product catalog service."""

from typing import Any

from src.core.supabase import get_supabase_client


class ProductService:
    """Service for reading the juice menu."""

    def __init__(self) -> None:
        """Initialize product service with Supabase client."""
        self.client = get_supabase_client()

    async def list_products(
        self,
        category: str | None = None,
        popular: bool | None = None,
    ) -> list[dict[str, Any]]:
        """List active products.

        Args:
            category: Optional menu category filter.
            popular: Optional featured flag filter.

        Returns:
            list[dict]: Product rows ordered by name.
        """
        query = self.client.table("products").select("*").eq("active", True)

        if category:
            query = query.eq("category", category)
        if popular is not None:
            query = query.eq("popular", popular)

        response = query.order("name").execute()
        return response.data or []

    async def get_product(self, product_id: str) -> dict[str, Any] | None:
        """Get a product by ID.

        Returns:
            dict | None: The product row or None if not found.
        """
        response = (
            self.client.table("products")
            .select("*")
            .eq("id", product_id)
            .execute()
        )
        return response.data[0] if response.data else None

    async def get_products_by_ids(self, product_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Get several products keyed by ID. Unknown IDs are absent from the result."""
        if not product_ids:
            return {}

        response = (
            self.client.table("products")
            .select("*")
            .in_("id", sorted(set(product_ids)))
            .execute()
        )
        return {str(product["id"]): product for product in response.data or []}
