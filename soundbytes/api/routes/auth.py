"""Sign-up and sign-in.

Both endpoints are rate limited per client IP and return a bearer token.
No ``from __future__ import annotations`` here: slowapi wraps the handlers
and FastAPI must see the real annotation objects through the wrapper.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes.config import settings
from soundbytes.db import get_db
from soundbytes.models.users import SignInRequest, SignUpRequest, TokenResponse
from soundbytes.services import accounts

logger = logging.getLogger(__name__)

router = APIRouter()

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@router.post(
    "/auth/sign-up",
    status_code=status.HTTP_201_CREATED,
    response_model=TokenResponse,
    responses={
        400: {"description": "Invalid username, email or password"},
        409: {"description": "Username or email already taken"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(settings.auth_rate_limit)
async def sign_up(
    request: Request,
    body: SignUpRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Create an account and return a token for it."""
    user = await accounts.register(db, body)
    await db.commit()
    return TokenResponse(token=accounts.issue_token(user))


@router.post(
    "/auth/sign-in",
    response_model=TokenResponse,
    responses={
        401: {"description": "Invalid credentials"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(settings.auth_rate_limit)
async def sign_in(
    request: Request,
    body: SignInRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Exchange username and password for a token."""
    user = await accounts.authenticate(db, body.username, body.password)
    return TokenResponse(token=accounts.issue_token(user))
