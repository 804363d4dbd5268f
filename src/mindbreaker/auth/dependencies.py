"""Authorization guard.

Every request resolves to exactly one ``Capability``. Routers declare the
capability they need (``require_user`` / ``require_admin``) once, instead of
each handler re-querying the caller's profile.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.jwt import verify_token
from mindbreaker.database import get_session
from mindbreaker.db.models import Profile
from mindbreaker.errors import Forbidden, Unauthorized

_bearer = HTTPBearer(auto_error=False)


class Role(str, Enum):
    GUEST = "guest"
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Capability:
    role: Role
    profile: Profile | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


async def get_capability(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Capability:
    """Resolve the caller's role from the bearer token.

    No token means guest. A token that fails verification, or whose profile
    no longer exists, is a 401; a banned profile is a 403.
    """
    if credentials is None:
        return Capability(Role.GUEST)

    try:
        payload = verify_token(credentials.credentials, expected_type="access")
        profile_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise Unauthorized(str(e) or None) from e

    profile = await db.get(Profile, profile_id)
    if profile is None:
        raise Unauthorized()
    if profile.is_banned:
        raise Forbidden("Account is banned")
    return Capability(Role.ADMIN if profile.is_admin else Role.USER, profile)


async def require_user(capability: Capability = Depends(get_capability)) -> Profile:
    """Any authenticated profile."""
    if capability.profile is None:
        raise Unauthorized()
    return capability.profile


async def require_admin(capability: Capability = Depends(get_capability)) -> Profile:
    """Authenticated profile holding the admin capability."""
    if capability.profile is None:
        raise Unauthorized()
    if not capability.is_admin:
        raise Forbidden()
    return capability.profile
