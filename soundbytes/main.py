"""
SoundBytes API

FastAPI application for the SoundBytes social feed.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from typing import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from soundbytes import errors
from soundbytes.config import settings
from soundbytes.api.routes import auth, health, sound_bytes, tracks, users
from soundbytes.db import init_db, close_db
from soundbytes.services.enrichment import close_metadata_enricher


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "accelerometer=(), camera=(), geolocation=(), "
            "gyroscope=(), magnetometer=(), microphone=(), "
            "payment=(), usb=()"
        )
        # HSTS is set by the reverse proxy in production

        return response


# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Track enrichment: {'on' if settings.enrichment_enabled else 'off'}")

    try:
        await init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    if not settings.access_token_secret:
        logger.warning("SOUNDBYTES_ACCESS_TOKEN_SECRET is not set; sign-in will fail")

    yield

    logger.info("Shutting down...")
    await close_db()
    await close_metadata_enricher()


app = FastAPI(
    title="SoundBytes API",
    version=settings.app_version,
    description=(
        "Social feed for short audio posts tied to musical tracks.\n\n"
        "Write endpoints require a **Bearer JWT** from `/api/v1/auth/sign-in` "
        "or `/api/v1/auth/sign-up`."
    ),
    lifespan=lifespan,
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


async def _handle_soundbytes_error(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, errors.SoundBytesError):
        raise exc
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )


async def _handle_request_validation(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, RequestValidationError):
        raise exc
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def _handle_storage_error(request: Request, exc: Exception) -> Response:
    # Storage detail stays in the log, never in the response.
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={"detail": errors.Unavailable.default_detail},
    )


# Adapter: FastAPI expects (Request, Exception) but slowapi's handler
# takes (Request, RateLimitExceeded).
def _handle_rate_limit(request: Request, exc: Exception) -> Response:
    if isinstance(exc, RateLimitExceeded):
        return _rate_limit_exceeded_handler(request, exc)
    raise exc


app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _handle_rate_limit)
app.add_exception_handler(errors.SoundBytesError, _handle_soundbytes_error)
app.add_exception_handler(RequestValidationError, _handle_request_validation)
app.add_exception_handler(SQLAlchemyError, _handle_storage_error)

# Security headers middleware (added first, runs last)
app.add_middleware(SecurityHeadersMiddleware)

# CORS middleware
if "*" in settings.cors_origins:
    logger.warning(
        "SECURITY WARNING: CORS allows all origins. "
        "Set SOUNDBYTES_CORS_ORIGINS to specific domains in production."
    )
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(users.router, prefix="/api/v1", tags=["users"])
app.include_router(sound_bytes.router, prefix="/api/v1", tags=["sound-bytes"])
app.include_router(tracks.router, prefix="/api/v1", tags=["tracks"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with service info."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
