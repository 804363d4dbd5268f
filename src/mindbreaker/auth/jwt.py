"""
RS256 JWT verification.

Tokens are issued by the external auth provider; this service only verifies
them. ``create_access_token`` exists for tooling and tests that need to mint
a token for a known profile.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from mindbreaker.config import get_settings

_private_key: str | None = None
_public_key: str | None = None


def _load_public_key() -> str:
    global _public_key  # noqa: PLW0603
    if _public_key is None:
        _public_key = Path(get_settings().jwt_public_key_path).read_text()
    return _public_key


def _load_private_key() -> str:
    global _private_key  # noqa: PLW0603
    if _private_key is None:
        _private_key = Path(get_settings().jwt_private_key_path).read_text()
    return _private_key


def reset_keys() -> None:
    """Reset cached keys (useful for testing)."""
    global _private_key, _public_key  # noqa: PLW0603
    _private_key = None
    _public_key = None


def create_access_token(profile_id: int, username: str) -> str:
    """Create a short-lived access token for a profile.

    Args:
        profile_id: The profile's database ID (becomes the ``sub`` claim).
        username: Informational claim, not trusted for authorization.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(profile_id),
        "username": username,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    return jwt.encode(payload, _load_private_key(), algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or the wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _load_public_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
