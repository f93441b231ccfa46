"""Customer feedback API routes."""

from fastapi import APIRouter, Query, status

from src.api.deps import AdminUser
from src.schemas.feedback import FeedbackCreate, FeedbackListResponse, FeedbackResponse
from src.services.feedback_service import FeedbackService

router = APIRouter(prefix="/feedbacks", tags=["feedbacks"])


@router.post(
    "",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit feedback",
)
async def create_feedback(data: FeedbackCreate) -> FeedbackResponse:
    """Store a customer's feedback. No sign-in required."""
    feedback = await FeedbackService().create_feedback(data)
    return FeedbackResponse(**feedback)


@router.get(
    "",
    response_model=FeedbackListResponse,
    summary="List feedback",
    description="Lists feedback newest first with overall rating statistics. Admin only.",
)
async def list_feedbacks(
    admin: AdminUser,
    rating: int | None = Query(default=None, ge=1, le=5, description="Only this star rating"),
) -> FeedbackListResponse:
    """List feedback with statistics."""
    service = FeedbackService()
    items = await service.list_feedbacks(rating)
    stats = await service.get_stats()
    return FeedbackListResponse(
        items=[FeedbackResponse(**item) for item in items],
        **stats,
    )
