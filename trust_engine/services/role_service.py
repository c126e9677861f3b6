"""Role authorization over the total order of member roles.

Roles, low to high: standard < business_user < sme < sme_admin < admin.
A role's tier is its 1-based position in that order, so SMEs sit at tier 3.

Profiles written before the ``user_role`` column existed carry only the
legacy booleans; ``role_from_legacy_flags`` is the single mapping from those
flags to a role and is applied whenever ``role`` is NULL.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.exceptions import InsufficientRoleError, ValidationError
from trust_engine.logging_config import get_logger
from trust_engine.models import Profile, UserRole
from trust_engine.services.audit_service import log_admin_action
from trust_engine.services.profile_service import get_profile

logger = get_logger(__name__)

ROLE_ORDER: tuple[UserRole, ...] = (
    UserRole.standard,
    UserRole.business_user,
    UserRole.sme,
    UserRole.sme_admin,
    UserRole.admin,
)

VOUCH_MIN_ROLE = UserRole.sme


def role_tier(role: UserRole | str) -> int:
    """1-based tier of a role in ROLE_ORDER."""
    return ROLE_ORDER.index(UserRole(role)) + 1


def role_from_legacy_flags(
    is_admin: bool = False,
    is_verified_expert: bool = False,
    is_sme: bool = False,
) -> UserRole:
    """Map the pre-role boolean flags onto a role."""
    if is_admin:
        return UserRole.admin
    if is_verified_expert:
        return UserRole.sme_admin
    if is_sme:
        return UserRole.sme
    return UserRole.standard


def effective_role(profile: Profile) -> UserRole:
    """The role used for every authorization decision."""
    if profile.role:
        return UserRole(profile.role)
    return role_from_legacy_flags(
        is_admin=bool(profile.is_admin),
        is_verified_expert=bool(profile.is_verified_expert),
        is_sme=bool(profile.is_sme),
    )


def authorize(profile: Profile | None, required_role: UserRole | str) -> bool:
    """True iff the profile's role is at or above ``required_role``."""
    if profile is None:
        return False
    return role_tier(effective_role(profile)) >= role_tier(required_role)


def has_exact_role(profile: Profile | None, role: UserRole | str) -> bool:
    if profile is None:
        return False
    return effective_role(profile) == UserRole(role)


def require_role(
    profile: Profile,
    required_role: UserRole | str,
    action: str | None = None,
) -> None:
    """Raise InsufficientRoleError unless ``authorize`` passes."""
    if not authorize(profile, required_role):
        raise InsufficientRoleError(
            effective_role(profile).value if profile is not None else "anonymous",
            UserRole(required_role).value,
            action,
        )


def can_vouch(profile: Profile) -> bool:
    return authorize(profile, VOUCH_MIN_ROLE)


def _apply_role(profile: Profile, role: UserRole) -> None:
    """Write ``role`` and align the legacy flags so they cannot re-elevate it."""
    profile.role = role.value
    profile.is_admin = role == UserRole.admin
    profile.is_verified_expert = role == UserRole.sme_admin
    profile.is_sme = role_tier(role) >= role_tier(UserRole.sme)
    profile.updated_at = datetime.now(timezone.utc)


async def grant_role(
    db: AsyncSession,
    admin: Profile,
    target_id: str,
    new_role: UserRole | str,
    reason: str | None = None,
) -> Profile:
    """Explicit admin elevation (e.g. approving an SME application)."""
    require_role(admin, UserRole.admin, action="grant roles")
    new_role = UserRole(new_role)

    target = await get_profile(db, target_id, for_update=True)
    current = effective_role(target)
    if role_tier(new_role) <= role_tier(current):
        raise ValidationError(
            f"Cannot grant '{new_role.value}': user already holds '{current.value}'",
            "role_not_higher",
        )

    _apply_role(target, new_role)
    target.needs_expert_review = False
    await log_admin_action(
        db, admin.id, "grant_sme", "user", target_id,
        reason=reason, metadata={"from": current.value, "to": new_role.value},
    )
    await db.commit()

    logger.info("role_granted", target_id=target_id, from_role=current.value, to_role=new_role.value)
    return target


async def demote_role(
    db: AsyncSession,
    admin: Profile,
    target_id: str,
    new_role: UserRole | str,
    reason: str | None = None,
) -> Profile:
    """The only path that lowers a role. Admin-only and explicit."""
    require_role(admin, UserRole.admin, action="demote members")
    new_role = UserRole(new_role)

    target = await get_profile(db, target_id, for_update=True)
    current = effective_role(target)
    if role_tier(new_role) >= role_tier(current):
        raise ValidationError(
            f"Demotion must lower the role: '{new_role.value}' is not below '{current.value}'",
            "role_not_lower",
        )

    _apply_role(target, new_role)
    action_type = (
        "revoke_sme"
        if role_tier(current) >= role_tier(UserRole.sme) > role_tier(new_role)
        else "demote_role"
    )
    await log_admin_action(
        db, admin.id, action_type, "user", target_id,
        reason=reason, metadata={"from": current.value, "to": new_role.value},
    )
    await db.commit()

    logger.info("role_demoted", target_id=target_id, from_role=current.value, to_role=new_role.value)
    return target
