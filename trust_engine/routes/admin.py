"""Admin endpoints: roles, bans, the keyword blacklist and the moderation queue.

Every handler here is admin-gated in the service layer and audited.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.auth import get_current_profile
from trust_engine.database import get_db
from trust_engine.models import Profile, QueueStatus, UserRole
from trust_engine.schemas import (
    AdminReasonRequest,
    BanRequest,
    BlacklistKeywordRequest,
    BlacklistKeywordResponse,
    BlacklistSnapshotResponse,
    ModerationQueueEntryResponse,
    ProfileResponse,
    ReviewSubmissionResponse,
    RoleChangeRequest,
)
from trust_engine.services.content_admission import (
    list_moderation_queue,
    purge_review,
    unflag_review,
)
from trust_engine.services.keyword_filter import (
    add_keyword,
    deactivate_keyword,
    refresh_blacklist_snapshot,
)
from trust_engine.services.role_service import demote_role, grant_role, require_role
from trust_engine.services.spam_report_service import set_ban

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Roles & bans
# ---------------------------------------------------------------------------


@router.post("/users/{user_id}/role/grant", response_model=ProfileResponse)
async def grant_member_role(
    user_id: str,
    body: RoleChangeRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    return await grant_role(db, admin, user_id, body.new_role, reason=body.reason)


@router.post("/users/{user_id}/role/demote", response_model=ProfileResponse)
async def demote_member_role(
    user_id: str,
    body: RoleChangeRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    """The only path that lowers a role; vouch counts never do."""
    return await demote_role(db, admin, user_id, body.new_role, reason=body.reason)


@router.post("/users/{user_id}/ban", response_model=ProfileResponse)
async def ban_member(
    user_id: str,
    body: BanRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    return await set_ban(db, admin, user_id, body.banned, reason=body.reason)


# ---------------------------------------------------------------------------
# Keyword blacklist
# ---------------------------------------------------------------------------


@router.post("/blacklist", response_model=BlacklistKeywordResponse, status_code=201)
async def add_blacklist_keyword(
    body: BlacklistKeywordRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    return await add_keyword(db, admin, body.keyword, reason=body.reason)


@router.delete("/blacklist/{keyword}")
async def remove_blacklist_keyword(
    keyword: str,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    removed = await deactivate_keyword(db, admin, keyword)
    if not removed:
        raise HTTPException(status_code=404, detail="Keyword not on the active blacklist")
    return {"ok": True, "keyword": keyword}


@router.get("/blacklist", response_model=BlacklistSnapshotResponse)
async def current_blacklist(
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    """Reload and return the active snapshot."""
    require_role(admin, UserRole.admin, action="view the keyword blacklist")
    snapshot = await refresh_blacklist_snapshot(db)
    return BlacklistSnapshotResponse(
        keywords=[k.keyword for k in snapshot.keywords],
        loaded_at=snapshot.loaded_at,
    )


# ---------------------------------------------------------------------------
# Moderation queue
# ---------------------------------------------------------------------------


@router.get("/moderation-queue", response_model=list[ModerationQueueEntryResponse])
async def moderation_queue(
    status: QueueStatus = QueueStatus.pending,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    return await list_moderation_queue(db, admin, status=status, limit=min(limit, 200))


@router.post("/reviews/{review_id}/restore", response_model=ReviewSubmissionResponse)
async def restore_review(
    review_id: UUID,
    body: AdminReasonRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    submission = await unflag_review(db, admin, review_id, reason=body.reason)
    return ReviewSubmissionResponse(**submission.to_dict())


@router.post("/reviews/{review_id}/purge", response_model=ReviewSubmissionResponse)
async def purge_flagged_review(
    review_id: UUID,
    body: AdminReasonRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_profile),
):
    submission = await purge_review(db, admin, review_id, reason=body.reason)
    return ReviewSubmissionResponse(**submission.to_dict())
