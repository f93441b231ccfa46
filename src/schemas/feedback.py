"""Feedback Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FeedbackCreate(BaseModel):
    """Schema for submitting feedback."""

    name: str = Field(min_length=1, max_length=100)
    email: str | None = None
    rating: int = Field(ge=1, le=5, description="Star rating from 1 to 5")
    message: str = Field(min_length=1, max_length=2000)


class FeedbackResponse(BaseModel):
    """Schema for a stored feedback entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str | None = None
    rating: int
    message: str
    created_at: datetime


class FeedbackListResponse(BaseModel):
    """Schema for the admin feedback listing."""

    items: list[FeedbackResponse]
    total: int = Field(description="Number of feedback entries overall")
    average_rating: float = Field(description="Mean rating, one decimal place")
    rating_counts: dict[int, int] = Field(description="Entries per star rating")
