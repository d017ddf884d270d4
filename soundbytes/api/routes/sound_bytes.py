"""
SoundByte endpoints — posts, likes, and comments.

Endpoint summary:
  GET    /sound-bytes                              — feed, newest first (auth optional)
  POST   /sound-bytes                              — create (auth)
  GET    /sound-bytes/{id}                         — read (visibility applies)
  PUT    /sound-bytes/{id}                         — update (author only)
  DELETE /sound-bytes/{id}                         — delete (author only)
  POST   /sound-bytes/{id}/like                    — like (auth, idempotent)
  POST   /sound-bytes/{id}/unlike                  — unlike (auth, floor at 0)
  POST   /sound-bytes/{id}/comments                — comment (auth)
  PUT    /sound-bytes/{id}/comments/{comment_id}   — edit (comment author only)
  DELETE /sound-bytes/{id}/comments/{comment_id}   — delete (comment author only)

A post body may carry ``trackId`` (existing canonical track) or ``track``
(raw attributes, resolved through the track registry). The post stores a
snapshot of the track's display fields either way.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes.auth.dependencies import Identity, get_current_user, optional_token, require_identity
from soundbytes.auth.tokens import TokenClaims
from soundbytes.config import settings
from soundbytes.db import get_db
from soundbytes.db.models import User
from soundbytes.models.sound_bytes import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    DeleteResult,
    FeedPage,
    LikeResult,
    SoundByteCreate,
    SoundByteResponse,
    SoundByteUpdate,
)
from soundbytes.services import engagement
from soundbytes.services import sound_bytes as posts
from soundbytes.services.track_registry import TrackRegistry, get_track_registry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/sound-bytes", response_model=FeedPage)
async def list_sound_bytes(
    limit: int = Query(settings.feed_default_limit, ge=1),
    skip: int = Query(0, ge=0),
    claims: TokenClaims | None = Depends(optional_token),
    db: AsyncSession = Depends(get_db),
) -> FeedPage:
    """Newest-first feed of posts visible to the caller."""
    limit = min(limit, settings.feed_max_limit)
    viewer_id = claims["sub"] if claims else None
    total, rows = await posts.list_feed(db, viewer_id, limit=limit, skip=skip)
    return FeedPage(
        total=total,
        limit=limit,
        skip=skip,
        items=[SoundByteResponse.model_validate(p) for p in rows],
    )


@router.post("/sound-bytes", status_code=status.HTTP_201_CREATED, response_model=SoundByteResponse)
async def create_sound_byte(
    body: SoundByteCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: TrackRegistry = Depends(get_track_registry),
) -> SoundByteResponse:
    """Create a post. The author is always the caller."""
    post = await posts.create_post(db, registry, user, body)
    await db.commit()
    return SoundByteResponse.model_validate(post)


@router.get("/sound-bytes/{sound_byte_id}", response_model=SoundByteResponse)
async def get_sound_byte(
    sound_byte_id: str,
    claims: TokenClaims | None = Depends(optional_token),
    db: AsyncSession = Depends(get_db),
) -> SoundByteResponse:
    viewer_id = claims["sub"] if claims else None
    post = await posts.get_visible_post(db, sound_byte_id, viewer_id)
    return SoundByteResponse.model_validate(post)


@router.put("/sound-bytes/{sound_byte_id}", response_model=SoundByteResponse)
async def update_sound_byte(
    sound_byte_id: str,
    body: SoundByteUpdate,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
    registry: TrackRegistry = Depends(get_track_registry),
) -> SoundByteResponse:
    """Update a post. Re-linking a track replaces the whole track snapshot."""
    post = await posts.get_post(db, sound_byte_id)
    await posts.update_post(db, registry, post, identity.user_id, body)
    await db.commit()
    return SoundByteResponse.model_validate(post)


@router.delete("/sound-bytes/{sound_byte_id}", response_model=DeleteResult)
async def delete_sound_byte(
    sound_byte_id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> DeleteResult:
    post = await posts.get_post(db, sound_byte_id)
    deleted_id = await posts.delete_post(db, post, identity.user_id)
    await db.commit()
    return DeleteResult(deleted_id=deleted_id)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------


@router.post("/sound-bytes/{sound_byte_id}/like", response_model=LikeResult)
async def like_sound_byte(
    sound_byte_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LikeResult:
    post = await posts.get_visible_post(db, sound_byte_id, user.id)
    count = await engagement.like(db, post, user.id)
    await db.commit()
    return LikeResult(id=post.id, likes_count=count, liked=True)


@router.post("/sound-bytes/{sound_byte_id}/unlike", response_model=LikeResult)
async def unlike_sound_byte(
    sound_byte_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LikeResult:
    post = await posts.get_visible_post(db, sound_byte_id, user.id)
    count = await engagement.unlike(db, post, user.id)
    await db.commit()
    return LikeResult(id=post.id, likes_count=count, liked=False)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.post(
    "/sound-bytes/{sound_byte_id}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=SoundByteResponse,
)
async def create_comment(
    sound_byte_id: str,
    body: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SoundByteResponse:
    """Add a comment; returns the post with its comments."""
    post = await posts.get_visible_post(db, sound_byte_id, user.id)
    await engagement.add_comment(db, post, user, body.body)
    await db.commit()
    return SoundByteResponse.model_validate(post)


@router.put("/sound-bytes/{sound_byte_id}/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    sound_byte_id: str,
    comment_id: str,
    body: CommentUpdate,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    post = await posts.get_visible_post(db, sound_byte_id, identity.user_id)
    comment = await engagement.edit_comment(db, post, comment_id, identity.user_id, body.body)
    await db.commit()
    return CommentResponse.model_validate(comment)


@router.delete(
    "/sound-bytes/{sound_byte_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_comment(
    sound_byte_id: str,
    comment_id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> None:
    post = await posts.get_visible_post(db, sound_byte_id, identity.user_id)
    await engagement.delete_comment(db, post, comment_id, identity.user_id)
    await db.commit()
