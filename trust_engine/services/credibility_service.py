"""Credibility scoring for moderation relaxation.

The score (0-100) blends SME status, reputation, community upvotes and an
optional context signal (is the product under discussion SME-certified).
It never gates content on its own; ModerationGateway consumes it.
"""

from dataclasses import asdict, dataclass, field
from typing import Awaitable, Callable, Literal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.config import get_settings
from trust_engine.logging_config import get_logger
from trust_engine.models import ActionKind, ReputationEvent
from trust_engine.services.profile_service import find_profile
from trust_engine.services.reputation_service import is_sme_for_read

logger = get_logger(__name__)

# Point scheme
SME_POINTS = 50
REPUTATION_POINTS_MAX = 30
REPUTATION_CAP = 300
UPVOTE_POINTS_MAX = 15
UPVOTE_CAP = 100
VERIFIED_CONTEXT_POINTS = 5

TRUSTED_REPUTATION = 50

ContextLookup = Callable[[AsyncSession, str], Awaitable[bool]]


async def no_context_signal(db: AsyncSession, context_id: str) -> bool:
    return False


@dataclass(frozen=True)
class CredibilityFactors:
    sme_status: bool = False
    reputation_score: float = 0.0
    verified_context: bool = False
    community_upvotes: int = 0


@dataclass(frozen=True)
class CredibilityScore:
    score: int
    tier: Literal["sme", "trusted", "community", "guest"]
    moderation_priority: Literal["low", "medium", "high"]
    factors: CredibilityFactors = field(default_factory=CredibilityFactors)

    @property
    def factor(self) -> float:
        """Trust multiplier in [1.0, 2.0]; guests sit at the 1.0 baseline."""
        return 1.0 + self.score / 100

    @property
    def relaxes_borderline(self) -> bool:
        """Whether borderline verdicts for this actor may be relaxed."""
        return self.factors.sme_status or self.score >= get_settings().credibility_relax_score

    def to_dict(self) -> dict:
        data = asdict(self)
        data["factor"] = self.factor
        return data


GUEST_CREDIBILITY = CredibilityScore(score=0, tier="guest", moderation_priority="low")
UNKNOWN_CREDIBILITY = CredibilityScore(score=0, tier="guest", moderation_priority="high")


def combine(factors: CredibilityFactors) -> CredibilityScore:
    """Pure point arithmetic over already-gathered factors."""
    points = 0.0
    if factors.sme_status:
        points += SME_POINTS
    points += min(REPUTATION_POINTS_MAX, factors.reputation_score / REPUTATION_CAP * REPUTATION_POINTS_MAX)
    points += min(UPVOTE_POINTS_MAX, factors.community_upvotes / UPVOTE_CAP * UPVOTE_POINTS_MAX)
    if factors.verified_context:
        points += VERIFIED_CONTEXT_POINTS

    if factors.sme_status:
        tier = "sme"
    elif factors.reputation_score >= TRUSTED_REPUTATION:
        tier = "trusted"
    elif factors.reputation_score > 0:
        tier = "community"
    else:
        tier = "guest"

    # High credibility means low scrutiny
    if points >= 60:
        priority = "low"
    elif points >= 30:
        priority = "medium"
    else:
        priority = "high"

    return CredibilityScore(
        score=round(points),
        tier=tier,
        moderation_priority=priority,
        factors=factors,
    )


class CredibilityScorer:
    """Computes a per-call credibility score for an actor and optional context."""

    def __init__(self, db: AsyncSession, context_lookup: ContextLookup = no_context_signal):
        self.db = db
        self.context_lookup = context_lookup

    async def _upvotes_received(self, actor_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).where(
                ReputationEvent.profile_id == actor_id,
                ReputationEvent.action_kind == ActionKind.helpful_vote.value,
            )
        )
        return int(result.scalar() or 0)

    async def score(self, actor_id: str | None, context_id: str | None = None) -> CredibilityScore:
        if actor_id is None:
            return GUEST_CREDIBILITY

        try:
            profile = await find_profile(self.db, actor_id)
            if profile is None:
                return GUEST_CREDIBILITY

            verified_context = False
            if context_id is not None:
                verified_context = await self.context_lookup(self.db, context_id)

            factors = CredibilityFactors(
                sme_status=is_sme_for_read(profile),
                reputation_score=float(profile.reputation_score or 0),
                verified_context=verified_context,
                community_upvotes=await self._upvotes_received(actor_id),
            )
        except SQLAlchemyError as e:
            logger.warning("credibility_lookup_failed", actor_id=actor_id, error=str(e))
            return UNKNOWN_CREDIBILITY

        return combine(factors)
