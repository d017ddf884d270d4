"""Canonical track lookups (read-only; tracks are created via posts and jukeboxes)."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes import errors
from soundbytes.db import get_db
from soundbytes.models.tracks import TrackResponse
from soundbytes.services.track_keys import derive_key
from soundbytes.services.track_registry import TrackRegistry, get_track_registry

router = APIRouter()


@router.get("/tracks/lookup", response_model=TrackResponse)
async def lookup_track(
    artist: str = Query(..., min_length=1),
    title: str = Query(..., min_length=1),
    sound_clip_url: str | None = Query(None, alias="soundClipUrl"),
    db: AsyncSession = Depends(get_db),
    registry: TrackRegistry = Depends(get_track_registry),
) -> TrackResponse:
    """Find the canonical track for raw attributes without creating one."""
    track = await registry.find_by_key(db, derive_key(artist, title, sound_clip_url))
    if track is None:
        raise errors.NotFound("Track not found")
    return TrackResponse.model_validate(track)


@router.get("/tracks/{track_id}", response_model=TrackResponse)
async def get_track(
    track_id: str,
    db: AsyncSession = Depends(get_db),
    registry: TrackRegistry = Depends(get_track_registry),
) -> TrackResponse:
    return TrackResponse.model_validate(await registry.find_by_id(db, track_id))
