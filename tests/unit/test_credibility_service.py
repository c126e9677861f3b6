"""Tests for credibility scoring."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from trust_engine.models import UserRole
from trust_engine.services.credibility_service import (
    GUEST_CREDIBILITY,
    UNKNOWN_CREDIBILITY,
    CredibilityFactors,
    CredibilityScorer,
    combine,
)


class TestCombine:
    def test_maximum_credibility(self):
        score = combine(
            CredibilityFactors(
                sme_status=True,
                reputation_score=300,
                verified_context=True,
                community_upvotes=100,
            )
        )
        assert score.score == 100
        assert score.tier == "sme"
        assert score.moderation_priority == "low"
        assert score.factor == 2.0

    def test_caps_apply(self):
        score = combine(CredibilityFactors(reputation_score=3000, community_upvotes=5000))
        assert score.score == 45

    def test_trusted_member(self):
        score = combine(CredibilityFactors(reputation_score=150))
        assert score.score == 15
        assert score.tier == "trusted"
        assert score.moderation_priority == "high"

    def test_medium_priority(self):
        score = combine(CredibilityFactors(reputation_score=300, community_upvotes=20))
        assert score.score == 33
        assert score.moderation_priority == "medium"

    @pytest.mark.parametrize(
        "reputation,tier",
        [(0, "guest"), (1, "community"), (49, "community"), (50, "trusted")],
    )
    def test_tiers(self, reputation, tier):
        assert combine(CredibilityFactors(reputation_score=reputation)).tier == tier

    def test_only_smes_relax_borderline_by_default(self):
        best_non_sme = combine(
            CredibilityFactors(reputation_score=300, community_upvotes=100, verified_context=True)
        )
        assert best_non_sme.score == 50
        assert best_non_sme.relaxes_borderline is False
        assert combine(CredibilityFactors(sme_status=True)).relaxes_borderline is True

    def test_guest_baseline(self):
        assert GUEST_CREDIBILITY.factor == 1.0
        assert GUEST_CREDIBILITY.relaxes_borderline is False


class TestCredibilityScorer:
    @pytest.mark.asyncio
    async def test_anonymous_actor_is_guest(self, mock_session):
        assert await CredibilityScorer(mock_session).score(None) is GUEST_CREDIBILITY
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_profile_is_guest(self, mock_session, make_result):
        mock_session.execute.return_value = make_result(scalar=None)
        assert await CredibilityScorer(mock_session).score("ghost") is GUEST_CREDIBILITY

    @pytest.mark.asyncio
    async def test_sme_with_verified_context(self, mock_session, make_result, make_profile):
        mock_session.execute.side_effect = [
            make_result(scalar=make_profile("u", UserRole.sme, score=150)),
            make_result(scalar=40),
        ]
        lookup = AsyncMock(return_value=True)

        score = await CredibilityScorer(mock_session, context_lookup=lookup).score("u", "product-1")

        lookup.assert_awaited_once_with(mock_session, "product-1")
        assert score.factors.sme_status is True
        assert score.factors.verified_context is True
        assert score.factors.community_upvotes == 40
        assert score.score == 50 + 15 + 6 + 5

    @pytest.mark.asyncio
    async def test_lookup_failure_yields_unknown(self, mock_session):
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        score = await CredibilityScorer(mock_session).score("u")
        assert score is UNKNOWN_CREDIBILITY
        assert score.moderation_priority == "high"
