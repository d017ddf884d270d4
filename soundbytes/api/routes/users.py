"""
User endpoints — profiles, follows, and the per-user jukebox.

Endpoint summary:
  GET    /users                           — list users (auth)
  GET    /users/me                        — own profile (auth)
  PATCH  /users/me                        — update own profile (auth)
  GET    /users/{user_id}                 — public profile (auth)
  POST   /users/{user_id}/follow          — follow (auth, idempotent)
  DELETE /users/{user_id}/follow          — unfollow (auth, idempotent)
  GET    /users/{user_id}/jukebox         — jukebox (public)
  POST   /users/{user_id}/jukebox         — add track (owner only, idempotent)
  DELETE /users/{user_id}/jukebox/{track} — remove track (owner only, idempotent)
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes.auth.dependencies import Identity, get_current_user, require_identity
from soundbytes.db import get_db
from soundbytes.db.models import Track, User
from soundbytes.models.tracks import TrackLink, TrackResponse
from soundbytes.models.users import (
    FollowResult,
    PrivateProfile,
    ProfileUpdate,
    PublicProfile,
    UserSummary,
)
from soundbytes.services import accounts, playlist
from soundbytes.services.track_registry import TrackRegistry, get_track_registry

logger = logging.getLogger(__name__)

router = APIRouter()


def _tracks(rows: list[Track]) -> list[TrackResponse]:
    return [TrackResponse.model_validate(t) for t in rows]


@router.get("/users", response_model=list[UserSummary])
async def list_users(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> list[UserSummary]:
    """All users, by username."""
    return [UserSummary.model_validate(u) for u in await accounts.list_users(db)]


@router.get("/users/me", response_model=PrivateProfile)
async def get_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PrivateProfile:
    return await accounts.private_profile(db, user)


@router.patch("/users/me", response_model=PrivateProfile)
async def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PrivateProfile:
    """Update display name, avatar, bio, genres or settings. Omitted fields are unchanged."""
    await accounts.update_profile(db, user, body)
    await db.commit()
    return await accounts.private_profile(db, user)


@router.get("/users/{user_id}", response_model=PublicProfile)
async def get_user(
    user_id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> PublicProfile:
    user = await accounts.get_user(db, user_id)
    return await accounts.public_profile(db, user)


@router.post("/users/{user_id}/follow", status_code=status.HTTP_201_CREATED, response_model=FollowResult)
async def follow_user(
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FollowResult:
    """Follow another user. Idempotent."""
    await accounts.follow(db, user.id, user_id)
    await db.commit()
    return FollowResult(following=True, user_id=user_id)


@router.delete("/users/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    user_id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Unfollow a user. No-op if not following."""
    await accounts.unfollow(db, identity.user_id, user_id)
    await db.commit()


# ---------------------------------------------------------------------------
# Jukebox
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}/jukebox", response_model=list[TrackResponse])
async def get_jukebox(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[TrackResponse]:
    """A user's jukebox, in the order tracks were added. No auth required."""
    return _tracks(await playlist.list_jukebox(db, user_id))


@router.post(
    "/users/{user_id}/jukebox",
    status_code=status.HTTP_201_CREATED,
    response_model=list[TrackResponse],
)
async def add_to_jukebox(
    user_id: str,
    body: TrackLink,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: TrackRegistry = Depends(get_track_registry),
) -> list[TrackResponse]:
    """
    Add a track by ``{trackId}`` or by ``{track: {title, artist, ...}}``.

    Raw attributes are resolved to the canonical track (created on first
    reference). Adding a track that is already present is a no-op.
    """
    rows = await playlist.add_to_jukebox(
        db, registry, actor_id=user.id, owner_id=user_id, link=body,
    )
    await db.commit()
    return _tracks(rows)


@router.delete("/users/{user_id}/jukebox/{track_id}", response_model=list[TrackResponse])
async def remove_from_jukebox(
    user_id: str,
    track_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[TrackResponse]:
    """Remove a track. Removing a track that is not present is a no-op."""
    rows = await playlist.remove_from_jukebox(
        db, actor_id=user.id, owner_id=user_id, track_id=track_id,
    )
    await db.commit()
    return _tracks(rows)
