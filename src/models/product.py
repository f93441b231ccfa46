"""Product model type definitions for database operations."""

from decimal import Decimal
from typing import TypedDict


class Product(TypedDict):
    """Products table row representation.

    Represents a juice on the menu.
    """

    id: str
    name: str
    description: str | None
    price: Decimal
    category: str | None
    popular: bool
    active: bool
