"""Moderation endpoints: classify content and read credibility."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.auth import get_current_profile, get_current_profile_optional
from trust_engine.database import get_db
from trust_engine.models import Profile
from trust_engine.schemas import (
    CredibilityResponse,
    ModerateRequest,
    ModerationVerdictResponse,
)
from trust_engine.services.credibility_service import CredibilityScore, CredibilityScorer
from trust_engine.services.moderation_client import ModerationClient
from trust_engine.services.moderation_gateway import ModerationGateway

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


def get_moderation_gateway(db: AsyncSession = Depends(get_db)) -> ModerationGateway:
    """FastAPI dependency: a gateway bound to the request's session."""
    return ModerationGateway(ModerationClient(), CredibilityScorer(db))


def _credibility_response(credibility: CredibilityScore) -> CredibilityResponse:
    data = credibility.to_dict()
    return CredibilityResponse(
        score=credibility.score,
        tier=credibility.tier,
        priority=credibility.moderation_priority,
        factor=credibility.factor,
        relaxes_borderline=credibility.relaxes_borderline,
        factors=data["factors"],
    )


@router.post("/check", response_model=ModerationVerdictResponse)
async def check_content(
    body: ModerateRequest,
    gateway: ModerationGateway = Depends(get_moderation_gateway),
    profile: Profile | None = Depends(get_current_profile_optional),
):
    """Classify content without persisting it. Guests get the unrelaxed verdict."""
    if profile is None:
        verdict = await gateway.moderate_guest(body.content, body.context_id)
    else:
        verdict = await gateway.moderate(body.content, profile.id, body.context_id)
    return ModerationVerdictResponse(**verdict.to_dict())


@router.get("/credibility/me", response_model=CredibilityResponse)
async def my_credibility(
    context_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    credibility = await CredibilityScorer(db).score(profile.id, context_id)
    return _credibility_response(credibility)
