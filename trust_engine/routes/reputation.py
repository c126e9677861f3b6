"""Reputation endpoints: standing, tier ladder, recompute and action credits."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.auth import get_current_profile
from trust_engine.config import get_settings
from trust_engine.database import get_db
from trust_engine.models import Profile, UserRole
from trust_engine.schemas import (
    ExpertReviewResolveRequest,
    ReputationActionRequest,
    ReputationResponse,
    TierResponse,
)
from trust_engine.services.profile_service import get_profile
from trust_engine.services.reputation_service import (
    on_qualifying_action,
    recompute,
    resolve_expert_review,
    standing_for,
)
from trust_engine.services.role_service import require_role

router = APIRouter(prefix="/api/reputation", tags=["reputation"])


@router.get("/tiers", response_model=list[TierResponse])
async def list_tiers():
    return [
        TierResponse(tier=index, name=name, min_score=floor)
        for index, (floor, name) in enumerate(get_settings().tier_ladder, start=1)
    ]


@router.get("/me", response_model=ReputationResponse)
async def my_reputation(profile: Profile = Depends(get_current_profile)):
    return ReputationResponse(**standing_for(profile).to_dict())


@router.get("/{user_id}", response_model=ReputationResponse)
async def member_reputation(user_id: str, db: AsyncSession = Depends(get_db)):
    """Stored standing; does not touch the event log."""
    profile = await get_profile(db, user_id)
    return ReputationResponse(**standing_for(profile).to_dict())


@router.post("/{user_id}/recompute", response_model=ReputationResponse)
async def recompute_reputation(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    """Members may recompute themselves; anyone else needs sme_admin."""
    if profile.id != user_id:
        require_role(profile, UserRole.sme_admin, action="recompute other members")
    standing = await recompute(db, user_id)
    return ReputationResponse(**standing.to_dict())


@router.post("/{user_id}/events", response_model=ReputationResponse, status_code=201)
async def record_reputation_event(
    user_id: str,
    body: ReputationActionRequest,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    """Credit a qualifying action (bounty payouts, reactions) recorded by another surface."""
    require_role(profile, UserRole.admin, action="credit reputation")
    standing = await on_qualifying_action(
        db, user_id, body.action_kind, body.source_type, body.source_id, weight=body.weight
    )
    return ReputationResponse(**standing.to_dict())


@router.post("/{user_id}/expert-review/resolve", response_model=ReputationResponse)
async def resolve_review(
    user_id: str,
    body: ExpertReviewResolveRequest,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    standing = await resolve_expert_review(db, user_id, profile, reason=body.reason)
    return ReputationResponse(**standing.to_dict())
