"""Canonical track registry — find-or-create keyed by the derived identity key.

This module is the only writer of the ``tracks`` table. Posts and jukeboxes
reach tracks through it, so there is at most one Track per key.

Race handling
-------------
Two requests can both miss on the same key and both try to insert. The
insert runs inside a SAVEPOINT; when the unique constraint on ``tracks.key``
rejects the loser, only the savepoint is rolled back (the caller's
transaction survives) and the registry re-reads the winner's row. Callers
never see the collision.

Enrichment
----------
An optional ``MetadataEnricher`` is handed to the constructor. It is called
only on a miss, only when the caller left ``cover_art_url`` or
``sound_clip_url`` empty, and always under a timeout. Failures are logged and
treated as "no data".
"""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes import errors
from soundbytes.config import settings
from soundbytes.db.models import Track
from soundbytes.models.tracks import TrackAttrs
from soundbytes.services.enrichment import (
    NO_ENRICHMENT,
    EnrichmentResult,
    MetadataEnricher,
    get_metadata_enricher,
)
from soundbytes.services.track_keys import derive_key

logger = logging.getLogger(__name__)


class TrackRegistry:
    """Find-or-create store of canonical tracks."""

    def __init__(
        self,
        enricher: MetadataEnricher | None = None,
        *,
        enrichment_timeout: float = 3.0,
    ) -> None:
        self.enricher = enricher
        self.enrichment_timeout = enrichment_timeout

    @property
    def enrichment_enabled(self) -> bool:
        return self.enricher is not None

    async def find_by_id(self, session: AsyncSession, track_id: str) -> Track:
        """Return the track with ``track_id`` or raise ``NotFound``."""
        track = await session.get(Track, track_id)
        if track is None:
            raise errors.NotFound("Track not found")
        return track

    async def find_by_key(self, session: AsyncSession, key: str) -> Track | None:
        result = await session.execute(select(Track).where(Track.key == key))
        return result.scalar_one_or_none()

    async def find_or_create(
        self,
        session: AsyncSession,
        attrs: TrackAttrs,
        *,
        key: str | None = None,
    ) -> Track:
        """Return the canonical track for ``attrs``, creating it on first reference.

        An existing track is returned as stored; newly supplied attributes
        are not merged into it.
        """
        key = key or derive_key(attrs.artist, attrs.title, attrs.sound_clip_url)

        existing = await self.find_by_key(session, key)
        if existing is not None:
            return existing

        meta = await self._enrich(attrs)
        track = Track(
            key=key,
            title=attrs.title,
            artist=attrs.artist,
            genre=attrs.genre or meta.genre,
            cover_art_url=attrs.cover_art_url or meta.cover_art_url,
            sound_clip_url=attrs.sound_clip_url or meta.sound_clip_url,
            source_url=attrs.source_url,
        )
        try:
            async with session.begin_nested():
                session.add(track)
                await session.flush()
        except IntegrityError:
            logger.info("Track key %r created concurrently; using existing record", key)
            winner = await self.find_by_key(session, key)
            if winner is None:
                raise errors.Unavailable("Could not resolve track")
            return winner

        logger.info("✅ Created track %s (%s - %s)", track.id, track.artist, track.title)
        return track

    async def _enrich(self, attrs: TrackAttrs) -> EnrichmentResult:
        if self.enricher is None:
            return NO_ENRICHMENT
        if attrs.cover_art_url and attrs.sound_clip_url:
            return NO_ENRICHMENT
        try:
            return await asyncio.wait_for(
                self.enricher.enrich(attrs),
                timeout=self.enrichment_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Enrichment timed out after %.1fs for %s - %s",
                self.enrichment_timeout, attrs.artist, attrs.title,
            )
        except Exception as e:
            logger.warning("Enrichment failed for %s - %s: %s", attrs.artist, attrs.title, e)
        return NO_ENRICHMENT


def get_track_registry() -> TrackRegistry:
    """FastAPI dependency: a registry wired to the configured enricher."""
    return TrackRegistry(
        get_metadata_enricher(),
        enrichment_timeout=settings.enrichment_timeout_seconds,
    )
