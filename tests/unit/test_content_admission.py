"""Tests for the review admission pipeline."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from trust_engine.exceptions import (
    BannedUserError,
    CitationRejectedError,
    InsufficientRoleError,
    ReputationRecomputeError,
    ReviewNotFoundError,
)
from trust_engine.models import ActionKind, ModerationQueueEntry, Review, UserRole
from trust_engine.services.content_admission import submit_review, unflag_review
from trust_engine.services.keyword_filter import BlacklistSnapshot
from trust_engine.services.moderation_gateway import ModerationVerdict
from trust_engine.services.reputation_service import ReputationStanding

MODULE = "trust_engine.services.content_admission"

SNAPSHOT = BlacklistSnapshot.of("miracle cure")


def _gateway(verdict: ModerationVerdict | None = None) -> MagicMock:
    gateway = MagicMock()
    gateway.moderate = AsyncMock(return_value=verdict or ModerationVerdict(is_safe=True))
    return gateway


def _standing(user_id="author", score=20.0) -> ReputationStanding:
    return ReputationStanding(
        user_id=user_id,
        score=score,
        tier=1,
        tier_name="Rooted Member",
        needs_expert_review=False,
        is_sme=False,
    )


def _added(mock_session, cls):
    return [c.args[0] for c in mock_session.add.call_args_list if isinstance(c.args[0], cls)]


class TestSubmitReview:
    @pytest.mark.asyncio
    async def test_blacklisted_review_is_flagged_without_reputation(
        self, mock_session, make_result, make_profile
    ):
        mock_session.execute.return_value = make_result(scalar=make_profile("author"))
        gateway = _gateway()

        with patch(f"{MODULE}.record_action", AsyncMock()) as record, patch(
            f"{MODULE}.recompute", AsyncMock()
        ) as recompute:
            result = await submit_review(
                mock_session, gateway, "author", "product-1",
                "This Miracle Cure fixed me", snapshot=SNAPSHOT,
            )

        assert result.is_flagged is True
        assert "miracle cure" in result.reason
        assert result.standing is None

        review = _added(mock_session, Review)[0]
        assert review.is_flagged is True
        assert review.flag_count == 1
        queue = _added(mock_session, ModerationQueueEntry)[0]
        assert queue.review_id == review.id
        assert queue.flag_count == 1
        assert queue.status == "pending"

        gateway.moderate.assert_not_called()
        record.assert_not_called()
        recompute.assert_not_called()
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_flagged_review_row_is_flushed_before_its_queue_entry(
        self, mock_session, make_result, make_profile
    ):
        mock_session.execute.return_value = make_result(scalar=make_profile("author"))
        order = []
        mock_session.add.side_effect = lambda obj: order.append(type(obj).__name__)
        mock_session.flush.side_effect = lambda: order.append("flush")

        await submit_review(
            mock_session, _gateway(), "author", "product-1",
            "miracle cure inside", snapshot=SNAPSHOT,
        )

        assert order == ["Review", "flush", "ModerationQueueEntry"]

    @pytest.mark.asyncio
    async def test_unsafe_verdict_is_flagged_with_reason(
        self, mock_session, make_result, make_profile
    ):
        mock_session.execute.return_value = make_result(scalar=make_profile("author"))
        gateway = _gateway(ModerationVerdict.failed_closed("moderation_unavailable"))

        with patch(f"{MODULE}.record_action", AsyncMock()) as record:
            result = await submit_review(
                mock_session, gateway, "author", "product-1", "Solid product", snapshot=SNAPSHOT
            )

        assert result.is_flagged is True
        assert result.reason == "moderation_unavailable"
        assert _added(mock_session, Review)[0].moderation_reason == "moderation_unavailable"
        record.assert_not_called()

    @pytest.mark.asyncio
    async def test_clean_review_with_citation_earns_both_events(
        self, mock_session, make_result, make_profile
    ):
        mock_session.execute.return_value = make_result(scalar=make_profile("author"))
        gateway = _gateway()

        with patch(f"{MODULE}.record_action", AsyncMock(return_value=True)) as record, patch(
            f"{MODULE}.recompute", AsyncMock(return_value=_standing(score=50.0))
        ):
            result = await submit_review(
                mock_session, gateway, "author", "product-1", "Helped my sleep",
                citation="https://pubmed.ncbi.nlm.nih.gov/123/", snapshot=SNAPSHOT,
            )

        assert result.is_flagged is False
        assert result.standing["score"] == 50.0
        kinds = [c.args[2] for c in record.await_args_list]
        assert kinds == [ActionKind.review, ActionKind.citation]
        gateway.moderate.assert_awaited_once_with(
            "Helped my sleep", actor_id="author", context_id="product-1"
        )
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_recompute_failure_keeps_the_review(
        self, mock_session, make_result, make_profile
    ):
        mock_session.execute.return_value = make_result(scalar=make_profile("author"))

        with patch(f"{MODULE}.record_action", AsyncMock(return_value=True)), patch(
            f"{MODULE}.recompute",
            AsyncMock(side_effect=ReputationRecomputeError("author", "db down")),
        ):
            result = await submit_review(
                mock_session, _gateway(), "author", "p", "Fine", snapshot=SNAPSHOT
            )

        assert result.is_flagged is False
        assert result.standing is None
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_banned_author_rejected(self, mock_session, make_result, make_profile):
        mock_session.execute.return_value = make_result(
            scalar=make_profile("author", is_banned=True)
        )
        with pytest.raises(BannedUserError):
            await submit_review(mock_session, _gateway(), "author", "p", "x", snapshot=SNAPSHOT)
        mock_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_bad_citation_rejected_before_moderation(
        self, mock_session, make_result, make_profile
    ):
        mock_session.execute.return_value = make_result(scalar=make_profile("author"))
        gateway = _gateway()

        with pytest.raises(CitationRejectedError):
            await submit_review(
                mock_session, gateway, "author", "p", "x",
                citation="https://example.com/blog", snapshot=SNAPSHOT,
            )
        gateway.moderate.assert_not_called()
        mock_session.add.assert_not_called()


class TestUnflagReview:
    @pytest.mark.asyncio
    async def test_requires_admin(self, mock_session, make_profile):
        with pytest.raises(InsufficientRoleError):
            await unflag_review(mock_session, make_profile("m", UserRole.sme_admin), uuid4())

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, mock_session, admin):
        with pytest.raises(ReviewNotFoundError):
            await unflag_review(mock_session, admin, "not-a-uuid")
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_restore_records_deferred_reputation(self, mock_session, make_result, admin):
        review = Review(
            id=uuid4(),
            author_id="author",
            product_id="p",
            body="flagged by mistake",
            citation=None,
            is_flagged=True,
            flag_count=1,
            moderation_reason="blacklisted_keyword: cure",
        )
        mock_session.execute.side_effect = [make_result(scalar=review), make_result(rowcount=1)]

        with patch(f"{MODULE}.log_admin_action", AsyncMock()) as audit, patch(
            f"{MODULE}.record_action", AsyncMock(return_value=True)
        ) as record, patch(f"{MODULE}.recompute", AsyncMock(return_value=_standing())):
            result = await unflag_review(mock_session, admin, str(review.id), reason="false hit")

        assert result.is_flagged is False
        assert review.is_flagged is False
        assert review.flag_count == 0
        assert review.moderation_reason is None
        assert audit.await_args.args[2] == "restore"
        record.assert_awaited_once()
        assert record.await_args.args[2] == ActionKind.review
        mock_session.commit.assert_awaited_once()
