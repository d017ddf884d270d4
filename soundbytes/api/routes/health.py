"""Health check endpoints."""
from __future__ import annotations

import logging

from typing_extensions import Required, TypedDict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes.config import settings
from soundbytes.db import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthDependencyDict(TypedDict, total=False):
    """Status entry for one dependency in the full health check."""

    status: Required[str]
    url: str  # enrichment only


class FullHealthCheckDict(TypedDict):
    """Response shape for ``GET /health/full``."""

    status: str  # "ok" | "degraded"
    service: str
    version: str
    dependencies: dict[str, HealthDependencyDict]


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Basic health check."""
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@router.get("/health/full")
async def full_health_check(db: AsyncSession = Depends(get_db)) -> FullHealthCheckDict:
    """Health check including the database and the enrichment configuration.

    The enrichment service is optional, so its absence never degrades status.
    """
    dependencies: dict[str, HealthDependencyDict] = {}
    overall = "ok"

    try:
        await db.execute(text("SELECT 1"))
        dependencies["database"] = {"status": "ok"}
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", e)
        dependencies["database"] = {"status": "unavailable"}
        overall = "degraded"

    if settings.enrichment_enabled and settings.enrichment_url:
        dependencies["enrichment"] = {"status": "configured", "url": settings.enrichment_url}
    else:
        dependencies["enrichment"] = {"status": "disabled"}

    return {
        "status": overall,
        "service": settings.app_name,
        "version": settings.app_version,
        "dependencies": dependencies,
    }
