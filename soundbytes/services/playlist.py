"""Jukebox — a user's ordered, duplicate-free playlist of canonical tracks.

Add and remove are idempotent: adding a track that is already present and
removing one that is absent both succeed and leave the jukebox unchanged.
Only the owner may mutate a jukebox; anyone may read it.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes import errors
from soundbytes.db.models import JukeboxEntry, Track, User
from soundbytes.models.tracks import TrackLink
from soundbytes.models.users import JukeboxStats
from soundbytes.services.post_denormalizer import resolve_track
from soundbytes.services.track_registry import TrackRegistry

logger = logging.getLogger(__name__)


def _require_owner(actor_id: str, owner_id: str) -> None:
    if actor_id != owner_id:
        logger.warning("User %s tried to modify jukebox of %s", actor_id[:8], owner_id[:8])
        raise errors.Forbidden("You're not allowed to modify this playlist")


async def _require_user(session: AsyncSession, user_id: str) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise errors.NotFound("User not found")
    return user


async def list_jukebox(session: AsyncSession, owner_id: str) -> list[Track]:
    """Return the owner's tracks in the order they were added."""
    await _require_user(session, owner_id)
    stmt = (
        select(Track)
        .join(JukeboxEntry, JukeboxEntry.track_id == Track.id)
        .where(JukeboxEntry.user_id == owner_id)
        .order_by(JukeboxEntry.position, JukeboxEntry.added_at)
    )
    return list((await session.execute(stmt)).scalars().all())


async def _entry_id(session: AsyncSession, owner_id: str, track_id: str) -> str | None:
    return (await session.execute(
        select(JukeboxEntry.entry_id).where(
            JukeboxEntry.user_id == owner_id,
            JukeboxEntry.track_id == track_id,
        )
    )).scalar_one_or_none()


async def add_to_jukebox(
    session: AsyncSession,
    registry: TrackRegistry,
    *,
    actor_id: str,
    owner_id: str,
    link: TrackLink,
) -> list[Track]:
    """Resolve ``link`` to a canonical track and append it unless already present."""
    _require_owner(actor_id, owner_id)
    await _require_user(session, owner_id)
    track = await resolve_track(session, registry, link)

    if await _entry_id(session, owner_id, track.id) is None:
        last = (await session.execute(
            select(func.max(JukeboxEntry.position)).where(JukeboxEntry.user_id == owner_id)
        )).scalar()
        entry = JukeboxEntry(
            user_id=owner_id,
            track_id=track.id,
            position=(last or 0) + 1,
        )
        try:
            async with session.begin_nested():
                session.add(entry)
                await session.flush()
            logger.info("Added track %s to jukebox of %s", track.id, owner_id[:8])
        except IntegrityError as exc:
            if await _entry_id(session, owner_id, track.id) is None:
                # Not a duplicate; the owner or track row is gone
                raise errors.Unavailable("Could not update the jukebox") from exc
            logger.info("Track %s added to jukebox of %s concurrently", track.id, owner_id[:8])

    return await list_jukebox(session, owner_id)


async def remove_from_jukebox(
    session: AsyncSession,
    *,
    actor_id: str,
    owner_id: str,
    track_id: str,
) -> list[Track]:
    """Remove ``track_id`` from the jukebox. No-op when it is not there."""
    _require_owner(actor_id, owner_id)
    await _require_user(session, owner_id)
    await session.execute(
        delete(JukeboxEntry).where(
            JukeboxEntry.user_id == owner_id,
            JukeboxEntry.track_id == track_id,
        )
    )
    return await list_jukebox(session, owner_id)


TOP_STATS_LIMIT = 5


async def _top_values(session: AsyncSession, owner_id: str, column: Any) -> list[str]:
    stmt = (
        select(column)
        .join(JukeboxEntry, JukeboxEntry.track_id == Track.id)
        .where(JukeboxEntry.user_id == owner_id, column.is_not(None))
        .group_by(column)
        .order_by(func.count().desc(), func.min(JukeboxEntry.position))
        .limit(TOP_STATS_LIMIT)
    )
    return list((await session.execute(stmt)).scalars().all())


async def jukebox_stats(session: AsyncSession, owner_id: str) -> JukeboxStats:
    """Top genres and artists across the jukebox; ties go to the earlier add."""
    return JukeboxStats(
        top_genres=await _top_values(session, owner_id, Track.genre),
        top_artists=await _top_values(session, owner_id, Track.artist),
    )
