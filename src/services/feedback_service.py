"""Customer feedback service."""

from datetime import datetime, timezone
from typing import Any

from src.core.supabase import get_supabase_client
from src.schemas.feedback import FeedbackCreate


class FeedbackService:
    """Service for storing and reviewing customer feedback."""

    def __init__(self) -> None:
        """Initialize feedback service with Supabase client."""
        self.client = get_supabase_client()

    async def create_feedback(self, data: FeedbackCreate) -> dict[str, Any]:
        """Store a feedback entry.

        Args:
            data: Feedback content.

        Returns:
            dict: The created feedback row.
        """
        response = (
            self.client.table("feedbacks")
            .insert(
                {
                    "name": data.name.strip(),
                    "email": data.email.strip().lower() if data.email else None,
                    "rating": data.rating,
                    "message": data.message.strip(),
                    "created_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .execute()
        )
        return response.data[0]

    async def list_feedbacks(self, rating: int | None = None) -> list[dict[str, Any]]:
        """List feedback, newest first, optionally for one star rating."""
        query = self.client.table("feedbacks").select("*")
        if rating is not None:
            query = query.eq("rating", rating)
        response = query.order("created_at", desc=True).execute()
        return response.data or []

    async def get_stats(self) -> dict[str, Any]:
        """Get overall count, average rating and per-rating counts."""
        response = self.client.table("feedbacks").select("rating").execute()
        ratings = [int(row["rating"]) for row in response.data or []]

        average = round(sum(ratings) / len(ratings), 1) if ratings else 0.0
        return {
            "total": len(ratings),
            "average_rating": average,
            "rating_counts": {star: ratings.count(star) for star in range(5, 0, -1)},
        }
