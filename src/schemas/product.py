"""Product Pydantic schemas for API request/response models."""

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.common import Money


class ProductResponse(BaseModel):
    """Schema for a catalog product."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Product identifier")
    name: str = Field(description="Product name")
    description: str | None = Field(default=None, description="Short description")
    price: Money = Field(description="Unit price")
    category: str | None = Field(default=None, description="Menu category")
    popular: bool = Field(default=False, description="Featured on the home page")


class ProductListResponse(BaseModel):
    """Schema for product list API responses."""

    items: list[ProductResponse]
