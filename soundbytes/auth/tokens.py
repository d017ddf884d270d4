"""
Access Token Generation and Validation

Provides signed JWT bearer tokens carrying the verified user identity.
Tokens are self-contained and don't require database storage.
"""
from __future__ import annotations

import jwt
from datetime import datetime, timedelta, timezone

from typing_extensions import Required, TypedDict

from soundbytes.config import settings


class AccessCodeError(Exception):
    """Raised when access token validation fails."""
    pass


class TokenClaims(TypedDict, total=False):
    """Decoded JWT payload returned by validate_access_code.

    ``type``, ``iat``, ``exp`` and ``sub`` (the user id) are always present.
    ``username`` is informational; ownership checks use ``sub``.
    """

    type: Required[str]
    iat: Required[int]
    exp: Required[int]
    sub: Required[str]
    username: str


def _get_secret() -> str:
    """Get the token signing secret, raising if not configured."""
    if not settings.access_token_secret:
        raise AccessCodeError(
            "ACCESS_TOKEN_SECRET not configured. "
            "Generate one with: openssl rand -hex 32"
        )
    return settings.access_token_secret


def generate_access_code(
    user_id: str,
    username: str | None = None,
    duration_hours: int | None = None,
) -> str:
    """
    Generate a signed access token (JWT) for ``user_id``.

    Args:
        user_id: User id placed in the ``sub`` claim
        username: Username placed in the ``username`` claim
        duration_hours: Token validity in hours (defaults to settings)

    Returns:
        Signed JWT token string

    Raises:
        AccessCodeError: If the duration is not positive or secret not configured
    """
    secret = _get_secret()

    hours = duration_hours if duration_hours is not None else settings.access_token_ttl_hours
    if hours <= 0:
        raise AccessCodeError("Token duration must be positive")

    now = datetime.now(timezone.utc)
    expiration = now + timedelta(hours=hours)

    payload: dict[str, object] = {
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int(expiration.timestamp()),
        "sub": user_id,
    }
    if username:
        payload["username"] = username

    return jwt.encode(
        payload,
        secret,
        algorithm=settings.access_token_algorithm,
    )


def validate_access_code(token: str) -> TokenClaims:
    """
    Validate an access token and return its claims.

    Raises:
        AccessCodeError: If token is invalid, expired, or malformed
    """
    secret = _get_secret()

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.access_token_algorithm],
        )

        # Validate and narrow each claim at the jwt.decode() boundary.
        raw_type = payload.get("type")
        if not isinstance(raw_type, str) or raw_type != "access":
            raise AccessCodeError("Invalid token type")

        raw_iat = payload.get("iat", 0)
        raw_exp = payload.get("exp", 0)
        if not isinstance(raw_iat, int) or not isinstance(raw_exp, int):
            raise AccessCodeError("Malformed token: iat/exp must be integers")

        raw_sub = payload.get("sub")
        if not isinstance(raw_sub, str) or not raw_sub:
            raise AccessCodeError("Malformed token: sub must be a non-empty string")

        claims = TokenClaims(type=raw_type, iat=raw_iat, exp=raw_exp, sub=raw_sub)

        raw_username = payload.get("username")
        if raw_username is not None:
            if not isinstance(raw_username, str):
                raise AccessCodeError("Malformed token: username must be a string")
            claims["username"] = raw_username

        return claims

    except jwt.ExpiredSignatureError:
        raise AccessCodeError("Access code has expired")
    except jwt.InvalidTokenError as e:
        raise AccessCodeError(f"Invalid access code: {e}")
