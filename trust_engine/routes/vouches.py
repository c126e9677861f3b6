"""Vouching endpoints: vouch for a member and read vouch counts."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.auth import get_current_profile, get_current_profile_optional
from trust_engine.database import get_db
from trust_engine.models import Profile
from trust_engine.schemas import VouchDataResponse, VouchRequest, VouchResponse
from trust_engine.services.vouch_service import get_vouch_data, submit_vouch

router = APIRouter(prefix="/api/vouches", tags=["vouches"])


@router.post("", response_model=VouchResponse)
async def vouch_for_member(
    body: VouchRequest,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    """Vouch once for a member below SME. A repeated vouch answers ``duplicate=true``."""
    outcome = await submit_vouch(db, profile.id, body.target_id)
    return VouchResponse(**outcome.to_dict())


@router.get("/{target_id}", response_model=VouchDataResponse)
async def vouch_data(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    profile: Profile | None = Depends(get_current_profile_optional),
):
    data = await get_vouch_data(db, target_id, profile.id if profile else None)
    return VouchDataResponse(**data)
