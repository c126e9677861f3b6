"""Spam reports and admin ban decisions."""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.exceptions import SelfReportError
from trust_engine.logging_config import get_logger
from trust_engine.models import Profile, SpamReport, UserRole
from trust_engine.services.audit_service import log_admin_action
from trust_engine.services.profile_service import get_profile
from trust_engine.services.role_service import require_role

logger = get_logger(__name__)


async def report_spam(
    db: AsyncSession,
    reporter_id: str,
    reported_id: str,
    reason: str | None = None,
) -> dict:
    """
    File a spam report. A second report for the same pair is a no-op
    that still answers ``success=True`` so client retries are safe.
    """
    if reporter_id == reported_id:
        raise SelfReportError()
    await get_profile(db, reported_id)

    result = await db.execute(
        insert(SpamReport)
        .values(reporter_id=reporter_id, reported_id=reported_id, reason=reason)
        .on_conflict_do_nothing(constraint="uq_spam_report_pair")
    )
    duplicate = result.rowcount == 0
    await db.commit()

    logger.info(
        "spam_report_filed",
        reporter_id=reporter_id,
        reported_id=reported_id,
        duplicate=duplicate,
    )
    return {"success": True, "duplicate": duplicate}


async def count_reports(db: AsyncSession, reported_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(SpamReport).where(SpamReport.reported_id == reported_id)
    )
    return int(result.scalar() or 0)


async def set_ban(
    db: AsyncSession,
    admin: Profile,
    target_id: str,
    banned: bool,
    reason: str | None = None,
) -> Profile:
    """Ban or unban a member; admin-only and audited."""
    require_role(admin, UserRole.admin, action="ban members")
    target = await get_profile(db, target_id, for_update=True)

    target.is_banned = banned
    target.updated_at = datetime.now(timezone.utc)
    await log_admin_action(
        db, admin.id, "ban" if banned else "unban", "user", target_id,
        reason=reason, metadata={"spam_reports": await count_reports(db, target_id)},
    )
    await db.commit()

    logger.info("ban_status_changed", target_id=target_id, banned=banned)
    return target
