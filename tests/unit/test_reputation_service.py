"""Tests for the reputation engine."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from trust_engine.exceptions import (
    InsufficientRoleError,
    InvalidWeightError,
    ReputationRecomputeError,
    ValidationError,
)
from trust_engine.models import ActionKind, UserRole
from trust_engine.services.reputation_service import (
    ACTION_WEIGHTS,
    compute_tier,
    is_sme_for_read,
    on_qualifying_action,
    recompute,
    recompute_all,
    resolve_expert_review,
)


class TestComputeTier:
    @pytest.mark.parametrize(
        "score,tier,name",
        [
            (0, 1, "Rooted Member"),
            (99.99, 1, "Rooted Member"),
            (100, 2, "Creative Contributor"),
            (300, 3, "Trusted Voice"),
            (1999, 5, "Insightful Guide"),
            (5000, 7, "Unified Expert"),
            (1_000_000, 7, "Unified Expert"),
        ],
    )
    def test_ladder(self, score, tier, name):
        assert compute_tier(score) == (tier, name)

    def test_custom_ladder(self):
        assert compute_tier(10, [(0, "a"), (5, "b")]) == (2, "b")


class TestIsSmeForRead:
    """Any single signal is enough to read as SME."""

    def test_plain_member(self, make_profile):
        assert is_sme_for_read(make_profile(score=10)) is False

    @pytest.mark.parametrize(
        "overrides",
        [
            {"role": UserRole.sme},
            {"is_verified_expert": True},
            {"badge_type": "Trusted Voice"},
            {"score": 300},
        ],
    )
    def test_signals(self, make_profile, overrides):
        assert is_sme_for_read(make_profile(**overrides)) is True


class TestRecompute:
    @pytest.mark.asyncio
    async def test_recompute_is_idempotent(self, mock_session, make_result, make_profile):
        profile = make_profile("u", score=0)
        mock_session.execute.side_effect = [
            make_result(scalar=profile),
            make_result(scalar=120),
            make_result(scalar=profile),
            make_result(scalar=120),
        ]

        first = await recompute(mock_session, "u")
        second = await recompute(mock_session, "u")

        assert first == second
        assert first.score == 120
        assert first.tier == 2
        assert profile.badge_type == "Creative Contributor"
        assert mock_session.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_history_failure_leaves_score_untouched(
        self, mock_session, make_result, make_profile
    ):
        profile = make_profile("u", score=50, badge_type="Rooted Member")
        mock_session.execute.side_effect = [
            make_result(scalar=profile),
            OperationalError("SELECT sum", {}, Exception("connection lost")),
        ]

        with pytest.raises(ReputationRecomputeError):
            await recompute(mock_session, "u")

        assert profile.reputation_score == 50
        assert profile.badge_type == "Rooted Member"
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_score_is_never_negative(self, mock_session, make_result, make_profile):
        profile = make_profile("u", score=10)
        mock_session.execute.side_effect = [make_result(scalar=profile), make_result(scalar=-5)]

        standing = await recompute(mock_session, "u")

        assert standing.score == 0

    @pytest.mark.asyncio
    async def test_crossing_threshold_flags_expert_review_only(
        self, mock_session, make_result, make_profile
    ):
        profile = make_profile("u", score=90)
        mock_session.execute.side_effect = [make_result(scalar=profile), make_result(scalar=110)]

        standing = await recompute(mock_session, "u")

        assert standing.needs_expert_review is True
        assert profile.role == "standard"

    @pytest.mark.asyncio
    async def test_smes_are_not_queued_for_review(self, mock_session, make_result, make_profile):
        profile = make_profile("u", UserRole.sme, score=90)
        mock_session.execute.side_effect = [make_result(scalar=profile), make_result(scalar=110)]

        await recompute(mock_session, "u")

        assert profile.needs_expert_review is False


class TestOnQualifyingAction:
    @pytest.mark.asyncio
    async def test_unknown_kind_rejected_before_any_query(self, mock_session):
        with pytest.raises(ValidationError):
            await on_qualifying_action(mock_session, "u", "free_points", "post", "p1")
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_bounty_needs_explicit_weight(self, mock_session):
        assert ActionKind.bounty_credit not in ACTION_WEIGHTS
        with pytest.raises(ValidationError):
            await on_qualifying_action(mock_session, "u", ActionKind.bounty_credit, "bounty", "b1")

    @pytest.mark.asyncio
    async def test_negative_weight_rejected(self, mock_session):
        with pytest.raises(InvalidWeightError):
            await on_qualifying_action(
                mock_session, "u", ActionKind.bounty_credit, "bounty", "b1", weight=-10
            )

    @pytest.mark.asyncio
    async def test_replayed_action_is_counted_once(self, mock_session, make_result, make_profile):
        profile = make_profile("u", score=20)
        mock_session.execute.side_effect = [
            make_result(scalar=profile),
            make_result(rowcount=0),
            make_result(scalar=20),
        ]

        standing = await on_qualifying_action(
            mock_session, "u", ActionKind.review, "review", "r1"
        )

        assert standing.score == 20
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_new_action_recomputes(self, mock_session, make_result, make_profile):
        profile = make_profile("u", score=0)
        mock_session.execute.side_effect = [
            make_result(scalar=profile),
            make_result(rowcount=1),
            make_result(scalar=30),
        ]

        standing = await on_qualifying_action(
            mock_session, "u", ActionKind.citation, "review", "r1"
        )

        assert standing.score == 30
        insert_stmt = mock_session.execute.await_args_list[1].args[0]
        assert insert_stmt.table.name == "reputation_events"


class TestResolveExpertReview:
    @pytest.mark.asyncio
    async def test_others_need_sme_admin(self, mock_session, make_profile):
        with pytest.raises(InsufficientRoleError):
            await resolve_expert_review(mock_session, "u", make_profile("other", UserRole.sme))

    @pytest.mark.asyncio
    async def test_sme_admin_resolves_and_audits(self, mock_session, make_result, make_profile):
        target = make_profile("u", score=150, needs_expert_review=True)
        mock_session.execute.return_value = make_result(scalar=target)

        with patch(
            "trust_engine.services.reputation_service.log_admin_action", AsyncMock()
        ) as audit:
            standing = await resolve_expert_review(
                mock_session, "u", make_profile("lead", UserRole.sme_admin)
            )

        assert standing.needs_expert_review is False
        assert audit.await_args.args[2] == "resolve_expert_review"


class TestRecomputeAll:
    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_sweep(self, mock_session, make_result):
        mock_session.execute.return_value = make_result(rows=[("u1",), ("u2",), ("u3",)])
        session_factory = MagicMock(return_value=mock_session)

        async def fake_recompute(session, user_id):
            if user_id == "u2":
                raise ReputationRecomputeError(user_id, "boom")

        with patch(
            "trust_engine.services.reputation_service.recompute",
            AsyncMock(side_effect=fake_recompute),
        ) as recompute_mock:
            counts = await recompute_all(session_factory, concurrency=2)

        assert counts == {"recomputed": 2, "failed": 1}
        assert recompute_mock.await_count == 3
