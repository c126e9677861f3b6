"""Bearer JWT identity for the trust API.

The identity provider issues the tokens; this service only verifies them
and seeds a profile on the first authenticated request. Token claims never
feed a trust decision, only the stored profile does.
"""

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from trust_engine.config import get_settings
from trust_engine.database import get_db
from trust_engine.logging_config import bind_actor_context, get_logger
from trust_engine.models import Profile
from trust_engine.services.profile_service import bootstrap_profile

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthenticatedIdentity:
    user_id: str
    display_name: str | None = None
    email: str | None = None
    email_verified: bool = False

    @classmethod
    def from_claims(cls, payload: dict) -> "AuthenticatedIdentity":
        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload",
            )
        return cls(
            user_id=str(user_id),
            display_name=payload.get("name"),
            email=payload.get("email"),
            email_verified=bool(payload.get("email_verified", False)),
        )


def decode_jwt(token: str) -> dict:
    """Decode and validate a JWT token. Raises HTTPException on failure."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def get_identity(request: Request) -> AuthenticatedIdentity:
    """Extract and verify the bearer token. Raises 401."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )

    token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Empty token",
        )
    return AuthenticatedIdentity.from_claims(decode_jwt(token))


async def get_current_profile(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    FastAPI dependency: the caller's profile, created on first use.

    Banned members still authenticate; the services decide what they may do.
    """
    identity = get_identity(request)
    profile = await bootstrap_profile(
        db,
        identity.user_id,
        display_name=identity.display_name,
        email=identity.email,
        email_verified=identity.email_verified,
    )
    bind_actor_context(
        request_id=getattr(request.state, "request_id", ""),
        user_id=profile.id,
    )
    return profile


async def get_current_profile_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Profile | None:
    """Optional member auth; returns Profile or None."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    try:
        return await get_current_profile(request, db)
    except HTTPException:
        return None
