"""Profile lookup and just-in-time bootstrap."""

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.exceptions import BannedUserError, ProfileNotFoundError
from trust_engine.logging_config import get_logger
from trust_engine.models import Profile, UserRole

logger = get_logger(__name__)


async def find_profile(
    db: AsyncSession,
    user_id: str,
    for_update: bool = False,
) -> Profile | None:
    """Load a profile, optionally taking a row lock for the current transaction."""
    stmt = select(Profile).where(Profile.id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_profile(
    db: AsyncSession,
    user_id: str,
    for_update: bool = False,
) -> Profile:
    profile = await find_profile(db, user_id, for_update=for_update)
    if profile is None:
        raise ProfileNotFoundError(user_id)
    return profile


async def bootstrap_profile(
    db: AsyncSession,
    user_id: str,
    display_name: str | None = None,
    email: str | None = None,
    email_verified: bool = False,
) -> Profile:
    """
    Return the member's profile, creating it on first authenticated action.

    New profiles start at reputation 0 with the ``standard`` role. The
    identity attributes are only used to seed the row; they never feed a
    trust decision. Concurrent first requests race on the primary key, so the
    insert is ``ON CONFLICT DO NOTHING`` followed by a read.
    """
    existing = await find_profile(db, user_id)
    if existing is not None:
        return existing

    await db.execute(
        insert(Profile)
        .values(
            id=user_id,
            display_name=display_name,
            email=email,
            email_verified=email_verified,
            reputation_score=0,
            role=UserRole.standard.value,
        )
        .on_conflict_do_nothing(index_elements=[Profile.id])
    )
    await db.commit()
    logger.info("profile_bootstrapped", user_id=user_id)

    return await get_profile(db, user_id)


def ensure_not_banned(profile: Profile) -> None:
    if profile.is_banned:
        raise BannedUserError(profile.id)
