"""Track metadata enrichment client.

Fills in cover art, clip URL and genre for a track the registry is about to
create. Enrichment is best-effort: the registry bounds every call with a
timeout and treats any failure as "no data".

The enricher is an external collaborator; this module only defines the
interface the registry talks to and an HTTP adapter for a service that
accepts the partial attributes as JSON and answers with
``{"coverArtUrl"?, "soundClipUrl"?, "genre"?}``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from soundbytes.config import settings
from soundbytes.models.tracks import TrackAttrs, check_http_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrichmentResult:
    """Fields an enricher may supply. Every field is optional."""

    cover_art_url: str | None = None
    sound_clip_url: str | None = None
    genre: str | None = None


NO_ENRICHMENT = EnrichmentResult()


class MetadataEnricher(Protocol):
    """Anything that can look up missing metadata for a track."""

    async def enrich(self, attrs: TrackAttrs) -> EnrichmentResult: ...


def _safe_url(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    try:
        return check_http_url(value)
    except ValueError:
        return None


def _safe_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


# Enrichment calls happen only on a registry miss, so the pool stays small.
_CONNECTION_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
    keepalive_expiry=30.0,
)


class HttpMetadataEnricher:
    """
    Async client for an HTTP enrichment service.

    Uses a long-lived httpx.AsyncClient so the connection is reused across
    requests. Non-2xx responses raise ``httpx.HTTPStatusError``; the registry
    is responsible for swallowing it.
    """

    def __init__(self, url: str, timeout: float = 3.0) -> None:
        self.url = url
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=_CONNECTION_LIMITS,
        )

    async def enrich(self, attrs: TrackAttrs) -> EnrichmentResult:
        payload = attrs.model_dump(by_alias=True, exclude_none=True)
        response = await self._client.post(self.url, json=payload)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            logger.warning("Enrichment service returned non-object payload for %s", attrs.title)
            return NO_ENRICHMENT
        return EnrichmentResult(
            cover_art_url=_safe_url(data.get("coverArtUrl")),
            sound_clip_url=_safe_url(data.get("soundClipUrl")),
            genre=_safe_text(data.get("genre")),
        )

    async def close(self) -> None:
        await self._client.aclose()


_enricher: HttpMetadataEnricher | None = None


def get_metadata_enricher() -> MetadataEnricher | None:
    """Return the process-wide enricher, or None when enrichment is off.

    Enrichment is off unless ``SOUNDBYTES_ENRICHMENT_ENABLED`` is true and an
    ``SOUNDBYTES_ENRICHMENT_URL`` is configured.
    """
    global _enricher
    if not settings.enrichment_enabled:
        return None
    if not settings.enrichment_url:
        logger.warning("Enrichment enabled but SOUNDBYTES_ENRICHMENT_URL is not set; skipping")
        return None
    if _enricher is None:
        _enricher = HttpMetadataEnricher(
            settings.enrichment_url,
            timeout=settings.enrichment_timeout_seconds,
        )
    return _enricher


async def close_metadata_enricher() -> None:
    """Close the shared HTTP client (called from the app lifespan)."""
    global _enricher
    if _enricher is not None:
        await _enricher.close()
        _enricher = None
