"""
FastAPI Authentication Dependencies

Turns a bearer token into a verified identity. Everything downstream trusts
that identity for ownership checks and never looks at credentials again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes import errors
from soundbytes.auth.tokens import AccessCodeError, TokenClaims, validate_access_code
from soundbytes.db import get_db
from soundbytes.db.models import User

logger = logging.getLogger(__name__)

# HTTPBearer extracts the token from "Authorization: Bearer <token>" header
# auto_error=False allows us to provide custom error messages
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """A verified caller."""

    user_id: str
    username: str


def _claims_from_credentials(credentials: HTTPAuthorizationCredentials | None) -> TokenClaims:
    if credentials is None:
        logger.warning("Access attempt without token")
        raise errors.Unauthorized("No token provided")
    try:
        return validate_access_code(credentials.credentials)
    except AccessCodeError as e:
        logger.warning("Invalid token: %s", e)
        raise errors.Unauthorized("Invalid or expired token")


async def require_valid_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenClaims:
    """
    FastAPI dependency that validates bearer tokens.

    Raises:
        Unauthorized: If token is missing, invalid, or expired
    """
    return _claims_from_credentials(credentials)


async def optional_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenClaims | None:
    """Like ``require_valid_token`` but anonymous callers get ``None``.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return _claims_from_credentials(credentials)


async def require_identity(
    claims: TokenClaims = Depends(require_valid_token),
) -> Identity:
    return Identity(user_id=claims["sub"], username=claims.get("username", ""))


async def get_current_user(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """The caller's own user row. A token for a deleted account is rejected."""
    user = await db.get(User, identity.user_id)
    if user is None:
        logger.warning("Token for unknown user %s", identity.user_id[:8])
        raise errors.Unauthorized("Account no longer exists")
    return user
