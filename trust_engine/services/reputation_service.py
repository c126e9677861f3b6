"""Reputation engine: event-sourced score, tier ladder and expert-review gating.

A member's score is never mutated incrementally. Each qualifying action is
appended to ``reputation_events`` once (unique on its source), and the score
is re-derived from that log on every recompute, so recomputing is idempotent
and replayable.
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.config import TrustSettings, get_settings
from trust_engine.exceptions import (
    InvalidWeightError,
    ReputationRecomputeError,
    TrustEngineError,
    ValidationError,
)
from trust_engine.logging_config import get_logger
from trust_engine.models import ActionKind, Profile, ReputationEvent, UserRole
from trust_engine.services.audit_service import log_admin_action
from trust_engine.services.profile_service import get_profile
from trust_engine.services.role_service import authorize, require_role

logger = get_logger(__name__)

# Default weight per action; bounty credits carry their own amount
ACTION_WEIGHTS: dict[ActionKind, float] = {
    ActionKind.helpful_vote: 2,
    ActionKind.accepted_answer: 15,
    ActionKind.review: 20,
    ActionKind.comment: 10,
    ActionKind.citation: 30,
    ActionKind.reaction_scientific_insight: 10,
    ActionKind.reaction_experiential_wisdom: 8,
    ActionKind.reaction_potential_concern: 5,
    ActionKind.reaction_groundbreaking_idea: 12,
    ActionKind.reaction_tried_and_true: 8,
}


@dataclass(frozen=True)
class ReputationStanding:
    user_id: str
    score: float
    tier: int
    tier_name: str
    needs_expert_review: bool
    is_sme: bool

    def to_dict(self) -> dict:
        return asdict(self)


def compute_tier(score: float, ladder: list[tuple[float, str]] | None = None) -> tuple[int, str]:
    """Map a score onto the tier ladder. Returns (1-based tier, tier name)."""
    ladder = ladder or get_settings().tier_ladder
    tier, name = 1, ladder[0][1]
    for index, (floor, tier_name) in enumerate(ladder, start=1):
        if score >= floor:
            tier, name = index, tier_name
    return tier, name


def is_sme_for_read(profile: Profile, settings: TrustSettings | None = None) -> bool:
    """SME status for read-gating: any one signal suffices, even before formal elevation."""
    settings = settings or get_settings()
    return (
        authorize(profile, UserRole.sme)
        or bool(profile.is_sme)
        or bool(profile.is_verified_expert)
        or (profile.badge_type or "") in settings.qualifying_badges
        or float(profile.reputation_score or 0) >= settings.sme_score_threshold
    )


def standing_for(profile: Profile, settings: TrustSettings | None = None) -> ReputationStanding:
    """Current standing as stored on the profile, without touching the event log."""
    settings = settings or get_settings()
    score = float(profile.reputation_score or 0)
    tier, tier_name = compute_tier(score, settings.tier_ladder)
    return ReputationStanding(
        user_id=profile.id,
        score=score,
        tier=tier,
        tier_name=tier_name,
        needs_expert_review=bool(profile.needs_expert_review),
        is_sme=is_sme_for_read(profile, settings),
    )


def _apply_score(profile: Profile, score: float, settings: TrustSettings) -> None:
    old_score = float(profile.reputation_score or 0)
    threshold = settings.expert_review_threshold

    # Role is never touched here; crossing only queues the member for review
    if old_score < threshold <= score and not authorize(profile, UserRole.sme):
        profile.needs_expert_review = True
        logger.info("expert_review_threshold_crossed", user_id=profile.id, score=score)

    _, tier_name = compute_tier(score, settings.tier_ladder)
    profile.reputation_score = score
    profile.badge_type = tier_name
    profile.updated_at = datetime.now(timezone.utc)


async def _sum_event_weights(db: AsyncSession, user_id: str) -> float:
    result = await db.execute(
        select(func.coalesce(func.sum(ReputationEvent.weight), 0)).where(
            ReputationEvent.profile_id == user_id
        )
    )
    return max(0.0, float(result.scalar_one()))


async def _recompute_locked(db: AsyncSession, profile: Profile) -> ReputationStanding:
    """Re-derive the score for a profile already locked in this transaction."""
    settings = get_settings()
    try:
        score = await _sum_event_weights(db, profile.id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("reputation_history_unavailable", user_id=profile.id, error=str(e))
        raise ReputationRecomputeError(profile.id, str(e)) from e

    _apply_score(profile, score, settings)
    return standing_for(profile, settings)


async def recompute(db: AsyncSession, user_id: str) -> ReputationStanding:
    """
    Re-derive a member's score and tier from the event log.

    Calling this twice with no new event in between yields the same result.
    If the log cannot be read, the stored score is left untouched and
    ReputationRecomputeError is raised.
    """
    profile = await get_profile(db, user_id, for_update=True)
    standing = await _recompute_locked(db, profile)
    await db.commit()

    logger.info(
        "reputation_recomputed",
        user_id=user_id,
        score=standing.score,
        tier=standing.tier,
    )
    return standing


def _resolve_action(action_kind: ActionKind | str, weight: float | None) -> tuple[ActionKind, float]:
    try:
        kind = ActionKind(action_kind)
    except ValueError:
        raise ValidationError(
            f"Unknown action kind: {action_kind}", "unknown_action_kind"
        ) from None

    if weight is None:
        if kind not in ACTION_WEIGHTS:
            raise ValidationError(
                f"Action '{kind.value}' requires an explicit weight", "weight_required"
            )
        weight = ACTION_WEIGHTS[kind]
    if weight < 0:
        raise InvalidWeightError(weight)
    return kind, weight


async def record_action(
    db: AsyncSession,
    user_id: str,
    action_kind: ActionKind | str,
    source_type: str,
    source_id: str,
    weight: float | None = None,
) -> bool:
    """
    Append an event in the caller's transaction without recomputing.

    Returns False when the (user, kind, source) triple was already recorded.
    """
    kind, weight = _resolve_action(action_kind, weight)
    result = await db.execute(
        insert(ReputationEvent)
        .values(
            profile_id=user_id,
            action_kind=kind.value,
            weight=weight,
            source_type=source_type,
            source_id=str(source_id),
        )
        .on_conflict_do_nothing(constraint="uq_reputation_event_source")
    )
    if result.rowcount == 0:
        logger.info(
            "reputation_event_already_recorded",
            user_id=user_id,
            action_kind=kind.value,
            source_id=str(source_id),
        )
        return False
    return True


async def on_qualifying_action(
    db: AsyncSession,
    user_id: str,
    action_kind: ActionKind | str,
    source_type: str,
    source_id: str,
    weight: float | None = None,
) -> ReputationStanding:
    """
    Record one qualifying action and recompute.

    The (user, kind, source) triple is recorded at most once, so replays of
    the same action do not double count. Callers must not pass actions on
    content that was auto-flagged or rejected by moderation.
    """
    kind, weight = _resolve_action(action_kind, weight)
    profile = await get_profile(db, user_id, for_update=True)
    await record_action(db, user_id, kind, source_type, source_id, weight)

    standing = await _recompute_locked(db, profile)
    await db.commit()
    return standing


async def resolve_expert_review(
    db: AsyncSession,
    user_id: str,
    resolved_by: Profile,
    reason: str | None = None,
) -> ReputationStanding:
    """Clear ``needs_expert_review`` once the expert-profile flow or application is settled."""
    if resolved_by.id != user_id:
        require_role(resolved_by, UserRole.sme_admin, action="resolve expert reviews")

    profile = await get_profile(db, user_id, for_update=True)
    profile.needs_expert_review = False
    profile.updated_at = datetime.now(timezone.utc)

    if resolved_by.id != user_id:
        await log_admin_action(
            db, resolved_by.id, "resolve_expert_review", "user", user_id, reason=reason
        )
    await db.commit()
    return standing_for(profile)


async def recompute_all(
    session_factory: Callable[[], AsyncSession],
    concurrency: int = 4,
) -> dict[str, int]:
    """
    Sweep every profile. Each member is recomputed in its own session and
    transaction; one failure does not stop the sweep.
    """
    async with session_factory() as session:
        result = await session.execute(select(Profile.id))
        user_ids = [row[0] for row in result.all()]

    semaphore = asyncio.Semaphore(concurrency)
    counts = {"recomputed": 0, "failed": 0}

    async def _one(user_id: str) -> None:
        async with semaphore:
            async with session_factory() as session:
                try:
                    await recompute(session, user_id)
                    counts["recomputed"] += 1
                except (TrustEngineError, SQLAlchemyError):
                    counts["failed"] += 1
                    logger.exception("reputation_sweep_user_failed", user_id=user_id)

    await asyncio.gather(*(_one(uid) for uid in user_ids))
    logger.info("reputation_sweep_complete", **counts)
    return counts
