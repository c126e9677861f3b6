"""Review endpoints: submit a review through the admission pipeline."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.auth import get_current_profile
from trust_engine.database import get_db
from trust_engine.models import Profile
from trust_engine.routes.moderation import get_moderation_gateway
from trust_engine.schemas import ReviewCreateRequest, ReviewSubmissionResponse
from trust_engine.services.content_admission import submit_review
from trust_engine.services.moderation_gateway import ModerationGateway

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.post("", response_model=ReviewSubmissionResponse, status_code=201)
async def create_review(
    body: ReviewCreateRequest,
    db: AsyncSession = Depends(get_db),
    gateway: ModerationGateway = Depends(get_moderation_gateway),
    profile: Profile = Depends(get_current_profile),
):
    """
    Submit a review. Flagged reviews are still stored (hidden, queued for
    an admin) and the response says so; they earn no reputation.
    """
    submission = await submit_review(
        db,
        gateway,
        profile.id,
        body.product_id,
        body.body,
        citation=body.citation,
    )
    return ReviewSubmissionResponse(**submission.to_dict())
