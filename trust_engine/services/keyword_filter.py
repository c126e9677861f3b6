"""Keyword blacklist: a pure scan over an injected snapshot, plus snapshot loading.

The filter itself never touches storage. Callers obtain a read-only
``BlacklistSnapshot`` (cached in Redis for a bounded TTL) and pass it in.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.config import get_settings
from trust_engine.logging_config import get_logger
from trust_engine.models import KeywordBlacklistEntry, Profile, UserRole
from trust_engine.redis import cache_delete, cache_get_json, cache_set_json
from trust_engine.services.audit_service import log_admin_action
from trust_engine.services.role_service import require_role

logger = get_logger(__name__)

_SNAPSHOT_CACHE_KEY = "keyword_blacklist:active"


@dataclass(frozen=True)
class KeywordMatch:
    keyword: str
    reason: str | None = None


@dataclass(frozen=True)
class BlacklistSnapshot:
    """Immutable view of the active blacklist at ``loaded_at``."""

    keywords: tuple[KeywordMatch, ...] = ()
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def of(cls, *keywords: str) -> BlacklistSnapshot:
        return cls(keywords=tuple(KeywordMatch(k) for k in keywords))

    def to_payload(self) -> dict:
        return {
            "keywords": [{"keyword": k.keyword, "reason": k.reason} for k in self.keywords],
            "loaded_at": self.loaded_at.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> BlacklistSnapshot:
        return cls(
            keywords=tuple(
                KeywordMatch(item["keyword"], item.get("reason"))
                for item in payload.get("keywords", [])
            ),
            loaded_at=datetime.fromisoformat(payload["loaded_at"]),
        )


MatchSet = list[KeywordMatch]


def scan(text: str, snapshot: BlacklistSnapshot) -> MatchSet:
    """Case-insensitive substring scan; matches keep blacklist order."""
    if not text:
        return []
    lowered = text.lower()
    return [kw for kw in snapshot.keywords if kw.keyword and kw.keyword.lower() in lowered]


# ---------------------------------------------------------------------------
# Snapshot loading
# ---------------------------------------------------------------------------


async def load_blacklist_snapshot(db: AsyncSession) -> BlacklistSnapshot:
    """Build a snapshot from the active rows of the blacklist table."""
    result = await db.execute(
        select(KeywordBlacklistEntry.keyword, KeywordBlacklistEntry.reason)
        .where(KeywordBlacklistEntry.is_active.is_(True))
        .order_by(KeywordBlacklistEntry.created_at)
    )
    keywords = tuple(KeywordMatch(keyword, reason) for keyword, reason in result.all())
    return BlacklistSnapshot(keywords=keywords)


async def get_blacklist_snapshot(db: AsyncSession) -> BlacklistSnapshot:
    """Serve the cached snapshot, reloading from the table once the TTL lapses."""
    cached = await cache_get_json(_SNAPSHOT_CACHE_KEY)
    if cached is not None:
        return BlacklistSnapshot.from_payload(cached)

    snapshot = await load_blacklist_snapshot(db)
    await cache_set_json(
        _SNAPSHOT_CACHE_KEY,
        snapshot.to_payload(),
        get_settings().blacklist_cache_ttl_seconds,
    )
    logger.info("blacklist_snapshot_loaded", keyword_count=len(snapshot.keywords))
    return snapshot


async def refresh_blacklist_snapshot(db: AsyncSession) -> BlacklistSnapshot:
    await cache_delete(_SNAPSHOT_CACHE_KEY)
    return await get_blacklist_snapshot(db)


# ---------------------------------------------------------------------------
# Admin maintenance
# ---------------------------------------------------------------------------


async def add_keyword(
    db: AsyncSession,
    admin: Profile,
    keyword: str,
    reason: str | None = None,
) -> KeywordBlacklistEntry:
    """Add (or reactivate) a blacklisted keyword."""
    require_role(admin, UserRole.admin, action="manage the keyword blacklist")
    normalized = keyword.strip().lower()

    result = await db.execute(
        select(KeywordBlacklistEntry).where(KeywordBlacklistEntry.keyword == normalized)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        entry = KeywordBlacklistEntry(
            keyword=normalized, reason=reason, is_active=True, created_by=admin.id
        )
        db.add(entry)
    else:
        entry.is_active = True
        entry.reason = reason or entry.reason

    await log_admin_action(
        db, admin.id, "add_blacklist", "keyword", normalized, reason=reason
    )
    await db.commit()
    await cache_delete(_SNAPSHOT_CACHE_KEY)
    return entry


async def deactivate_keyword(
    db: AsyncSession,
    admin: Profile,
    keyword: str,
    reason: str | None = None,
) -> bool:
    """Deactivate a keyword. Returns False if it was not active."""
    require_role(admin, UserRole.admin, action="manage the keyword blacklist")
    normalized = keyword.strip().lower()

    result = await db.execute(
        update(KeywordBlacklistEntry)
        .where(
            KeywordBlacklistEntry.keyword == normalized,
            KeywordBlacklistEntry.is_active.is_(True),
        )
        .values(is_active=False)
    )
    if result.rowcount == 0:
        return False

    await log_admin_action(
        db, admin.id, "remove_blacklist", "keyword", normalized, reason=reason
    )
    await db.commit()
    await cache_delete(_SNAPSHOT_CACHE_KEY)
    return True
