"""Post ↔ track denormalization.

A SoundByte carries a copy of its track's display fields so the feed can be
rendered without touching ``tracks``. The copy is always taken as a whole:
linking (or re-linking) overwrites every snapshot field from the new track,
including with ``None``, so nothing from a previous track survives.
"""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes import errors
from soundbytes.db.models import SoundByte, Track
from soundbytes.models.tracks import TrackLink
from soundbytes.services.track_registry import TrackRegistry

logger = logging.getLogger(__name__)

# Post column -> Track attribute
SNAPSHOT_FIELDS: dict[str, str] = {
    "track_id": "id",
    "title": "title",
    "artist": "artist",
    "genre": "genre",
    "cover_art_url": "cover_art_url",
    "sound_clip_url": "sound_clip_url",
}


def apply_snapshot(post: SoundByte, track: Track) -> SoundByte:
    """Overwrite the post's snapshot with ``track``'s fields."""
    for post_field, track_field in SNAPSHOT_FIELDS.items():
        setattr(post, post_field, getattr(track, track_field))
    return post


def clear_snapshot(post: SoundByte) -> SoundByte:
    """Unlink the post from any track."""
    for post_field in SNAPSHOT_FIELDS:
        setattr(post, post_field, None)
    return post


async def resolve_track(
    session: AsyncSession,
    registry: TrackRegistry,
    link: TrackLink,
) -> Track:
    """Turn a reference or raw attributes into a canonical Track."""
    if link.track_id is not None:
        return await registry.find_by_id(session, link.track_id)
    if link.track is None:
        raise errors.ValidationError("provide exactly one of trackId or track")
    return await registry.find_or_create(session, link.track)


async def link_track(
    session: AsyncSession,
    registry: TrackRegistry,
    post: SoundByte,
    link: TrackLink,
) -> SoundByte:
    """Link ``post`` to the track described by ``link`` and refresh its snapshot.

    Raises ``NotFound`` when ``link`` references a track id that does not exist.
    """
    track = await resolve_track(session, registry, link)
    previous = post.track_id
    apply_snapshot(post, track)
    if previous and previous != track.id:
        logger.debug("Re-linked post %s from track %s to %s", post.id, previous, track.id)
    return post
