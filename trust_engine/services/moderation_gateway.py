"""Content admission through the external classifier, fail-closed.

Any failure to obtain a classification (no credential, timeout, network
error, non-2xx, unparseable body, unexpected exception) produces an unsafe
verdict. That holds for every actor, admins included: credibility only ever
relaxes a *successful* borderline classification, never a failure.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Literal

from trust_engine.logging_config import get_logger
from trust_engine.services.credibility_service import (
    GUEST_CREDIBILITY,
    CredibilityScore,
    CredibilityScorer,
)
from trust_engine.services.moderation_client import (
    Classification,
    ModerationClient,
    ModerationError,
)

logger = get_logger(__name__)

REASON_RELAXED = "approved_borderline_credible"


@dataclass(frozen=True)
class ModerationVerdict:
    is_safe: bool
    reason: str | None = None
    confidence: Literal["high", "low"] = "high"
    credibility_adjusted: bool = False
    categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def failed_closed(cls, reason: str) -> ModerationVerdict:
        return cls(is_safe=False, reason=reason, confidence="high")


def decide(classification: Classification, credibility: CredibilityScore) -> ModerationVerdict:
    """Turn a classification into a verdict, relaxing borderline calls for credible actors."""
    if not classification.flagged:
        return ModerationVerdict(
            is_safe=True,
            confidence=classification.confidence,
            categories=classification.categories,
        )

    if classification.confidence == "low" and credibility.relaxes_borderline:
        return ModerationVerdict(
            is_safe=True,
            reason=REASON_RELAXED,
            confidence="low",
            credibility_adjusted=True,
            categories=classification.categories,
        )

    return ModerationVerdict(
        is_safe=False,
        reason=", ".join(classification.categories) or "flagged",
        confidence=classification.confidence,
        categories=classification.categories,
    )


class ModerationGateway:
    """Wraps the classifier and the credibility scorer; persists nothing."""

    def __init__(self, client: ModerationClient, scorer: CredibilityScorer):
        self.client = client
        self.scorer = scorer

    async def _classify(self, content: str, actor_context: dict) -> Classification | ModerationVerdict:
        try:
            return await self.client.classify(content, actor_context)
        except ModerationError as e:
            logger.error(
                "moderation_failed_closed",
                reason=e.reason,
                error=str(e),
                actor_id=actor_context.get("actor_id"),
            )
            return ModerationVerdict.failed_closed(e.reason)
        except Exception:
            logger.exception(
                "moderation_failed_closed",
                reason="moderation_error",
                actor_id=actor_context.get("actor_id"),
            )
            return ModerationVerdict.failed_closed("moderation_error")

    async def moderate(
        self,
        content: str,
        actor_id: str | None = None,
        context_id: str | None = None,
    ) -> ModerationVerdict:
        if actor_id is None:
            return await self.moderate_guest(content, context_id)

        credibility = await self.scorer.score(actor_id, context_id)
        outcome = await self._classify(
            content,
            {
                "actor_id": actor_id,
                "is_sme": credibility.factors.sme_status,
                "reputation": credibility.factors.reputation_score,
                "credibility_score": credibility.score,
                "verified_context": credibility.factors.verified_context,
            },
        )
        if isinstance(outcome, ModerationVerdict):
            return outcome

        verdict = decide(outcome, credibility)
        logger.info(
            "content_moderated",
            actor_id=actor_id,
            is_safe=verdict.is_safe,
            credibility_adjusted=verdict.credibility_adjusted,
            content=content,
        )
        return verdict

    async def moderate_guest(self, content: str, context_id: str | None = None) -> ModerationVerdict:
        """Guest path: the classifier decides alone, no credibility relaxation."""
        outcome = await self._classify(content, {"actor_id": None, "context_id": context_id})
        if isinstance(outcome, ModerationVerdict):
            return outcome

        verdict = decide(outcome, GUEST_CREDIBILITY)
        logger.info("guest_content_moderated", is_safe=verdict.is_safe, content=content)
        return verdict
