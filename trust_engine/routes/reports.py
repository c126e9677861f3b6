"""Spam report endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.auth import get_current_profile
from trust_engine.database import get_db
from trust_engine.models import Profile
from trust_engine.schemas import SpamReportRequest, SpamReportResponse
from trust_engine.services.profile_service import ensure_not_banned
from trust_engine.services.spam_report_service import report_spam

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("/spam", response_model=SpamReportResponse)
async def file_spam_report(
    body: SpamReportRequest,
    db: AsyncSession = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    ensure_not_banned(profile)
    result = await report_spam(db, profile.id, body.reported_id, body.reason)
    return SpamReportResponse(**result)
