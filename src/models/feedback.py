"""Feedback model type definitions for database operations."""

from datetime import datetime
from typing import TypedDict
from uuid import UUID


class Feedback(TypedDict):
    """Feedbacks table row representation."""

    id: UUID
    name: str
    email: str | None
    rating: int
    message: str
    created_at: datetime
