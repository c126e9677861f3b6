"""Review admission: citation check, blacklist scan, then the moderation gateway.

Flagged content is persisted hidden with a moderation queue entry and earns
no reputation. Reputation for a flagged review is only recorded once an
admin restores it.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.exceptions import (
    CitationRejectedError,
    ReputationRecomputeError,
    ReviewNotFoundError,
)
from trust_engine.logging_config import get_logger
from trust_engine.models import (
    ActionKind,
    ModerationQueueEntry,
    Profile,
    QueueStatus,
    Review,
    UserRole,
)
from trust_engine.services.audit_service import log_admin_action
from trust_engine.services.citation_validator import validate_citation
from trust_engine.services.keyword_filter import (
    BlacklistSnapshot,
    get_blacklist_snapshot,
    scan,
)
from trust_engine.services.moderation_gateway import ModerationGateway
from trust_engine.services.profile_service import ensure_not_banned, get_profile
from trust_engine.services.reputation_service import recompute, record_action
from trust_engine.services.role_service import require_role

logger = get_logger(__name__)

SOURCE_REVIEW = "review"


@dataclass(frozen=True)
class AdmissionDecision:
    admitted: bool
    reason: str | None = None
    keyword_matches: list[str] = field(default_factory=list)
    credibility_adjusted: bool = False


@dataclass(frozen=True)
class ReviewSubmission:
    review_id: str
    is_flagged: bool
    reason: str | None = None
    standing: dict | None = None

    def to_dict(self) -> dict:
        return asdict(self)


async def admit_content(
    gateway: ModerationGateway,
    author: Profile,
    body: str,
    snapshot: BlacklistSnapshot,
    citation: str | None = None,
    context_id: str | None = None,
) -> AdmissionDecision:
    """
    Decide whether a piece of member content may go live.

    Banned authors and invalid citations raise. A blacklist hit flags the
    content without calling the classifier.
    """
    ensure_not_banned(author)

    if citation:
        result = validate_citation(citation)
        if not result.is_valid:
            raise CitationRejectedError(citation, result.reason)

    matches = scan(body, snapshot)
    if matches:
        keywords = [m.keyword for m in matches]
        logger.info("content_blacklisted", author_id=author.id, keywords=keywords)
        return AdmissionDecision(
            admitted=False,
            reason=f"blacklisted_keyword: {', '.join(keywords)}",
            keyword_matches=keywords,
        )

    verdict = await gateway.moderate(body, actor_id=author.id, context_id=context_id)
    if not verdict.is_safe:
        return AdmissionDecision(admitted=False, reason=verdict.reason)
    return AdmissionDecision(
        admitted=True,
        reason=verdict.reason,
        credibility_adjusted=verdict.credibility_adjusted,
    )


async def _record_review_reputation(db: AsyncSession, review: Review) -> None:
    await record_action(db, review.author_id, ActionKind.review, SOURCE_REVIEW, str(review.id))
    if review.citation:
        await record_action(
            db, review.author_id, ActionKind.citation, SOURCE_REVIEW, str(review.id)
        )


async def _recompute_after_commit(db: AsyncSession, user_id: str) -> dict | None:
    # The events are already committed; a failed recompute is picked up by the sweep
    try:
        standing = await recompute(db, user_id)
    except ReputationRecomputeError as e:
        logger.warning("reputation_recompute_deferred", user_id=user_id, error=e.message)
        return None
    return standing.to_dict()


async def submit_review(
    db: AsyncSession,
    gateway: ModerationGateway,
    author_id: str,
    product_id: str,
    body: str,
    citation: str | None = None,
    snapshot: BlacklistSnapshot | None = None,
) -> ReviewSubmission:
    author = await get_profile(db, author_id)
    if snapshot is None:
        snapshot = await get_blacklist_snapshot(db)

    decision = await admit_content(
        gateway, author, body, snapshot, citation=citation, context_id=product_id
    )

    review = Review(
        id=uuid4(),
        author_id=author_id,
        product_id=product_id,
        body=body,
        citation=citation or None,
        is_flagged=not decision.admitted,
        flag_count=0 if decision.admitted else 1,
        moderation_reason=None if decision.admitted else decision.reason,
    )
    db.add(review)
    await db.flush()

    if not decision.admitted:
        db.add(
            ModerationQueueEntry(
                review_id=review.id,
                author_id=author_id,
                content=body,
                flag_count=1,
                reason=decision.reason,
                status=QueueStatus.pending.value,
            )
        )
        await db.commit()
        logger.info(
            "review_flagged",
            review_id=str(review.id),
            author_id=author_id,
            reason=decision.reason,
        )
        return ReviewSubmission(
            review_id=str(review.id), is_flagged=True, reason=decision.reason
        )

    await _record_review_reputation(db, review)
    await db.commit()
    logger.info(
        "review_published",
        review_id=str(review.id),
        author_id=author_id,
        credibility_adjusted=decision.credibility_adjusted,
    )

    standing = await _recompute_after_commit(db, author_id)
    return ReviewSubmission(
        review_id=str(review.id),
        is_flagged=False,
        reason=decision.reason,
        standing=standing,
    )


async def _get_review(db: AsyncSession, review_id: str | UUID) -> Review:
    try:
        key = review_id if isinstance(review_id, UUID) else UUID(str(review_id))
    except ValueError:
        raise ReviewNotFoundError(str(review_id)) from None

    result = await db.execute(select(Review).where(Review.id == key).with_for_update())
    review = result.scalar_one_or_none()
    if review is None:
        raise ReviewNotFoundError(str(review_id))
    return review


async def _resolve_queue(db: AsyncSession, review_id: UUID, status: QueueStatus) -> None:
    await db.execute(
        update(ModerationQueueEntry)
        .where(
            ModerationQueueEntry.review_id == review_id,
            ModerationQueueEntry.status == QueueStatus.pending.value,
        )
        .values(status=status.value, resolved_at=datetime.now(timezone.utc))
    )


async def list_moderation_queue(
    db: AsyncSession,
    admin: Profile,
    status: QueueStatus = QueueStatus.pending,
    limit: int = 50,
) -> list[ModerationQueueEntry]:
    require_role(admin, UserRole.admin, action="view the moderation queue")
    result = await db.execute(
        select(ModerationQueueEntry)
        .where(ModerationQueueEntry.status == status.value)
        .order_by(ModerationQueueEntry.created_at)
        .limit(limit)
    )
    return list(result.scalars().all())


async def unflag_review(
    db: AsyncSession,
    admin: Profile,
    review_id: str | UUID,
    reason: str | None = None,
) -> ReviewSubmission:
    """Restore a flagged review and record the reputation it was held back from."""
    require_role(admin, UserRole.admin, action="restore flagged content")
    review = await _get_review(db, review_id)

    was_flagged = review.is_flagged
    review.is_flagged = False
    review.flag_count = 0
    review.moderation_reason = None
    await _resolve_queue(db, review.id, QueueStatus.restored)
    await log_admin_action(
        db, admin.id, "restore", "review", str(review.id),
        reason=reason, metadata={"author_id": review.author_id},
    )

    # Events are unique per source, so restoring twice never double counts
    await _record_review_reputation(db, review)
    await db.commit()
    logger.info("review_restored", review_id=str(review.id), was_flagged=was_flagged)

    standing = await _recompute_after_commit(db, review.author_id)
    return ReviewSubmission(review_id=str(review.id), is_flagged=False, standing=standing)


async def purge_review(
    db: AsyncSession,
    admin: Profile,
    review_id: str | UUID,
    reason: str | None = None,
) -> ReviewSubmission:
    """Confirm a flag: the review stays hidden and its queue entry is closed."""
    require_role(admin, UserRole.admin, action="purge flagged content")
    review = await _get_review(db, review_id)

    review.is_flagged = True
    review.flag_count = max(review.flag_count or 0, 1)
    await _resolve_queue(db, review.id, QueueStatus.purged)
    await log_admin_action(
        db, admin.id, "purge", "review", str(review.id),
        reason=reason, metadata={"author_id": review.author_id},
    )
    await db.commit()

    logger.info("review_purged", review_id=str(review.id))
    return ReviewSubmission(
        review_id=str(review.id), is_flagged=True, reason=review.moderation_reason
    )
