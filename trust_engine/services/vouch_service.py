"""Peer vouching: the fast path to SME.

A member at tier 3 or above may vouch once for any member below tier 3.
The vouch that brings the target's count to exactly the promotion threshold
elevates the target to ``sme``.

Atomicity: the insert, the recount and the promotion run in one transaction
that holds a row lock on the target profile (``SELECT ... FOR UPDATE``), so
two vouches landing at count 2 serialise. The second one then sees the
target already at tier 3 and is rejected. The unique constraint on
(voucher, target) and the conditional role update back both checks up.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.config import get_settings
from trust_engine.exceptions import (
    AuthenticationRequiredError,
    InsufficientRoleError,
    SelfVouchError,
    TrustEngineError,
    VouchTargetIneligibleError,
)
from trust_engine.logging_config import get_logger
from trust_engine.models import Profile, UserRole, Vouch
from trust_engine.services.profile_service import find_profile, get_profile
from trust_engine.services.role_service import (
    ROLE_ORDER,
    VOUCH_MIN_ROLE,
    authorize,
    can_vouch,
    effective_role,
    role_tier,
)

logger = get_logger(__name__)

_PROMOTABLE_ROLES = [r.value for r in ROLE_ORDER if role_tier(r) < role_tier(UserRole.sme)]


@dataclass(frozen=True)
class VouchOutcome:
    accepted: bool
    vouch_count: int
    promoted: bool
    message: str
    duplicate: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _check_voucher(voucher: Profile | None) -> None:
    if voucher is None or voucher.is_banned:
        raise AuthenticationRequiredError("You must be logged in to vouch")
    if not can_vouch(voucher):
        raise InsufficientRoleError(
            effective_role(voucher).value, VOUCH_MIN_ROLE.value, action="vouch"
        )


def check_vouch_preconditions(
    voucher: Profile | None,
    target: Profile,
) -> None:
    """Preconditions 1-4, in order; the first failure raises."""
    _check_voucher(voucher)
    if authorize(target, UserRole.sme):
        raise VouchTargetIneligibleError(target.id, effective_role(target).value)
    if voucher.id == target.id:
        raise SelfVouchError()


async def count_vouches(db: AsyncSession, target_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Vouch).where(Vouch.target_id == target_id)
    )
    return int(result.scalar() or 0)


async def has_vouched(db: AsyncSession, voucher_id: str, target_id: str) -> bool:
    result = await db.execute(
        select(Vouch.id).where(Vouch.voucher_id == voucher_id, Vouch.target_id == target_id)
    )
    return result.scalar_one_or_none() is not None


async def _promote_to_sme(db: AsyncSession, target_id: str) -> bool:
    """Conditional update; True only for the call that actually changed the role."""
    result = await db.execute(
        update(Profile)
        .where(
            Profile.id == target_id,
            Profile.role.in_(_PROMOTABLE_ROLES) | Profile.role.is_(None),
        )
        .values(
            role=UserRole.sme.value,
            is_sme=True,
            needs_expert_review=False,
            updated_at=datetime.now(timezone.utc),
        )
    )
    return result.rowcount == 1


async def submit_vouch(db: AsyncSession, voucher_id: str | None, target_id: str) -> VouchOutcome:
    """
    Record a vouch from ``voucher_id`` for ``target_id``.

    Raises a typed error for precondition failures. A repeated pair is not an
    error: it returns ``accepted=False, duplicate=True`` and changes nothing.
    """
    threshold = get_settings().vouch_promotion_threshold

    voucher = await find_profile(db, voucher_id) if voucher_id else None
    _check_voucher(voucher)

    target = await get_profile(db, target_id, for_update=True)
    try:
        check_vouch_preconditions(voucher, target)
    except TrustEngineError:
        await db.rollback()
        raise

    inserted = await db.execute(
        insert(Vouch)
        .values(voucher_id=voucher.id, target_id=target.id)
        .on_conflict_do_nothing(constraint="uq_vouch_pair")
    )
    if inserted.rowcount == 0:
        vouch_count = await count_vouches(db, target.id)
        await db.rollback()
        logger.info("vouch_duplicate", voucher_id=voucher.id, target_id=target.id)
        return VouchOutcome(
            accepted=False,
            vouch_count=vouch_count,
            promoted=False,
            message="You have already vouched for this user",
            duplicate=True,
        )

    vouch_count = await count_vouches(db, target.id)
    promoted = False
    if vouch_count == threshold:
        promoted = await _promote_to_sme(db, target.id)

    await db.commit()

    logger.info(
        "vouch_submitted",
        voucher_id=voucher.id,
        target_id=target.id,
        vouch_count=vouch_count,
        promoted=promoted,
    )

    if promoted:
        message = f"Vouch recorded. User promoted to SME with {vouch_count} vouches"
    else:
        remaining = max(0, threshold - vouch_count)
        message = f"Vouch recorded ({vouch_count}/{threshold})"
        if remaining:
            message += f", {remaining} more needed for SME"

    return VouchOutcome(
        accepted=True,
        vouch_count=vouch_count,
        promoted=promoted,
        message=message,
    )


async def get_vouch_data(
    db: AsyncSession,
    target_id: str,
    current_user_id: str | None = None,
) -> dict:
    vouch_count = await count_vouches(db, target_id)
    vouched = False
    if current_user_id:
        vouched = await has_vouched(db, current_user_id, target_id)
    return {"vouch_count": vouch_count, "has_vouched": vouched}
