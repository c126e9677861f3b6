"""Global pytest fixtures for the trust engine.

Unit tests run against a mock ``AsyncSession``: each ``execute`` call is fed
a prepared result in call order via ``side_effect``.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from trust_engine.config import get_settings
from trust_engine.models import Profile, UserRole


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached process-wide; rebuild them around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ===========================================
# DATABASE SESSION FIXTURES
# ===========================================


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async database session."""
    session = AsyncMock()
    session.add = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


@pytest.fixture
def make_result() -> Callable[..., MagicMock]:
    """Build a mock ``Result`` answering the accessors the services use."""

    def _make(
        scalar: Any = None,
        rowcount: int = 1,
        rows: list | None = None,
    ) -> MagicMock:
        result = MagicMock()
        result.scalar_one_or_none.return_value = scalar
        result.scalar_one.return_value = scalar
        result.scalar.return_value = scalar
        result.rowcount = rowcount
        result.all.return_value = rows or []
        result.scalars.return_value.all.return_value = rows or []
        return result

    return _make


# ===========================================
# PROFILE FIXTURES
# ===========================================


@pytest.fixture
def make_profile() -> Callable[..., Profile]:
    """Transient Profile rows; nothing is persisted."""

    def _make(
        user_id: str = "user-1",
        role: UserRole | str | None = UserRole.standard,
        score: float = 0,
        **overrides: Any,
    ) -> Profile:
        fields = {
            "id": user_id,
            "display_name": user_id,
            "role": UserRole(role).value if role is not None else None,
            "reputation_score": score,
            "is_sme": False,
            "is_verified_expert": False,
            "is_admin": False,
            "is_banned": False,
            "needs_expert_review": False,
            "badge_type": None,
        }
        fields.update(overrides)
        return Profile(**fields)

    return _make


@pytest.fixture
def admin(make_profile) -> Profile:
    return make_profile("admin-1", UserRole.admin)
