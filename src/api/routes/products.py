"""Product catalog API routes."""

from fastapi import APIRouter, Query

from src.api.middleware.error_handler import NotFoundError
from src.schemas.product import ProductListResponse, ProductResponse
from src.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List products",
    description="Lists active menu items, optionally by category or featured flag.",
)
async def list_products(
    category: str | None = Query(default=None, description="Menu category"),
    popular: bool | None = Query(default=None, description="Only featured products"),
) -> ProductListResponse:
    """List the juice menu."""
    products = await ProductService().list_products(category=category, popular=popular)
    return ProductListResponse(items=[ProductResponse(**product) for product in products])


@router.get("/{product_id}", response_model=ProductResponse, summary="Get product")
async def get_product(product_id: str) -> ProductResponse:
    """Get a product by ID.

    Raises:
        NotFoundError: 404 if the product does not exist.
    """
    product = await ProductService().get_product(product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return ProductResponse(**product)
