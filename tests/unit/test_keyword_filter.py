"""Tests for the keyword blacklist filter and snapshot cache."""

from unittest.mock import AsyncMock, patch

import pytest

from trust_engine.exceptions import InsufficientRoleError
from trust_engine.models import UserRole
from trust_engine.services.keyword_filter import (
    BlacklistSnapshot,
    KeywordMatch,
    add_keyword,
    deactivate_keyword,
    get_blacklist_snapshot,
    scan,
)


class TestScan:
    def test_case_insensitive_substring(self):
        snapshot = BlacklistSnapshot.of("miracle cure")
        matches = scan("This is a MIRACLE CURE for everything", snapshot)
        assert [m.keyword for m in matches] == ["miracle cure"]

    def test_matches_keep_blacklist_order(self):
        snapshot = BlacklistSnapshot.of("detox", "cure", "guaranteed")
        matches = scan("Guaranteed cure, total detox", snapshot)
        assert [m.keyword for m in matches] == ["detox", "cure", "guaranteed"]

    def test_no_match(self):
        assert scan("A balanced review", BlacklistSnapshot.of("scam")) == []

    def test_empty_text(self):
        assert scan("", BlacklistSnapshot.of("scam")) == []

    def test_empty_snapshot(self):
        assert scan("anything at all", BlacklistSnapshot()) == []

    def test_reason_is_carried(self):
        snapshot = BlacklistSnapshot(keywords=(KeywordMatch("scam", "fraud"),))
        assert scan("total scam", snapshot)[0].reason == "fraud"


class TestSnapshotCache:
    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, mock_session):
        payload = BlacklistSnapshot.of("scam").to_payload()
        with patch(
            "trust_engine.services.keyword_filter.cache_get_json",
            AsyncMock(return_value=payload),
        ):
            snapshot = await get_blacklist_snapshot(mock_session)

        assert [k.keyword for k in snapshot.keywords] == ["scam"]
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_cache_miss_loads_and_stores(self, mock_session, make_result):
        mock_session.execute.return_value = make_result(rows=[("miracle cure", "spam")])
        set_json = AsyncMock()
        with patch(
            "trust_engine.services.keyword_filter.cache_get_json",
            AsyncMock(return_value=None),
        ), patch("trust_engine.services.keyword_filter.cache_set_json", set_json):
            snapshot = await get_blacklist_snapshot(mock_session)

        assert snapshot.keywords == (KeywordMatch("miracle cure", "spam"),)
        set_json.assert_awaited_once()
        key, stored, ttl = set_json.await_args.args
        assert key == "keyword_blacklist:active"
        assert stored["keywords"][0]["keyword"] == "miracle cure"
        assert ttl == 300


class TestBlacklistMaintenance:
    @pytest.mark.asyncio
    async def test_add_keyword_requires_admin(self, mock_session, make_profile):
        sme = make_profile("sme-1", UserRole.sme)
        with pytest.raises(InsufficientRoleError):
            await add_keyword(mock_session, sme, "scam")
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_keyword_normalises_and_invalidates(
        self, mock_session, make_result, admin
    ):
        mock_session.execute.return_value = make_result(scalar=None)
        delete = AsyncMock()
        with patch(
            "trust_engine.services.keyword_filter.log_admin_action", AsyncMock()
        ) as audit, patch("trust_engine.services.keyword_filter.cache_delete", delete):
            entry = await add_keyword(mock_session, admin, "  Miracle Cure ", reason="spam")

        assert entry.keyword == "miracle cure"
        mock_session.add.assert_called_once_with(entry)
        assert audit.await_args.args[2] == "add_blacklist"
        mock_session.commit.assert_awaited_once()
        delete.assert_awaited_once_with("keyword_blacklist:active")

    @pytest.mark.asyncio
    async def test_deactivate_unknown_keyword(self, mock_session, make_result, admin):
        mock_session.execute.return_value = make_result(rowcount=0)
        with patch("trust_engine.services.keyword_filter.cache_delete", AsyncMock()) as delete:
            removed = await deactivate_keyword(mock_session, admin, "scam")

        assert removed is False
        mock_session.commit.assert_not_called()
        delete.assert_not_called()
