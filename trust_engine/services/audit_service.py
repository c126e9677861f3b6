"""Admin audit log: every privileged trust decision leaves a row."""

from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.logging_config import get_logger
from trust_engine.models import AdminLog

logger = get_logger(__name__)

ADMIN_ACTION_TYPES = frozenset({
    "restore",
    "purge",
    "ban",
    "unban",
    "add_blacklist",
    "remove_blacklist",
    "clear_flags",
    "grant_sme",
    "revoke_sme",
    "demote_role",
    "resolve_expert_review",
    "reset_reputation",
})


async def log_admin_action(
    db: AsyncSession,
    admin_id: str,
    action_type: str,
    target_type: str,
    target_id: str,
    reason: str | None = None,
    metadata: dict | None = None,
) -> AdminLog:
    """
    Insert an admin audit entry in the caller's transaction.

    Args:
        db: Database session (the caller commits)
        admin_id: Acting administrator
        action_type: One of ADMIN_ACTION_TYPES
        target_type: e.g. 'user', 'keyword', 'review'
        target_id: Identifier of the affected row
        reason: Free-text justification (optional)
        metadata: Additional structured context (optional)
    """
    if action_type not in ADMIN_ACTION_TYPES:
        raise ValueError(f"Unknown admin action type: {action_type}")

    entry = AdminLog(
        admin_id=admin_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
        metadata_=metadata or {},
    )
    db.add(entry)
    await db.flush()

    logger.info(
        "admin_action_logged",
        admin_id=admin_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
    )
    return entry
