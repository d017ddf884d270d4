"""SoundByte persistence — post CRUD, ownership and read visibility.

Route handlers delegate here. Track linking goes through
``post_denormalizer``; counters and comments through ``engagement``.

Visibility:
  public  — anyone
  friends — the author and users who follow the author
  private — the author only
Posts a viewer may not see are reported as missing, not forbidden.
"""
from __future__ import annotations

import logging

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes import errors
from soundbytes.db.models import SoundByte, SoundByteLike, User
from soundbytes.models.sound_bytes import SoundByteCreate, SoundByteUpdate
from soundbytes.services import accounts
from soundbytes.services.post_denormalizer import clear_snapshot, link_track
from soundbytes.services.track_registry import TrackRegistry

logger = logging.getLogger(__name__)


def can_view(post: SoundByte, viewer_id: str | None, following: set[str]) -> bool:
    if post.visibility == "public":
        return True
    if viewer_id is None:
        return False
    if post.author_id == viewer_id:
        return True
    return post.visibility == "friends" and post.author_id in following


def require_author(post: SoundByte, actor_id: str) -> None:
    if post.author_id != actor_id:
        logger.warning("User %s tried to modify post %s", actor_id[:8], post.id)
        raise errors.Forbidden("You're not allowed to do that!")


async def get_post(session: AsyncSession, post_id: str) -> SoundByte:
    post = await session.get(SoundByte, post_id)
    if post is None:
        raise errors.NotFound("SoundByte not found")
    return post


async def get_visible_post(session: AsyncSession, post_id: str, viewer_id: str | None) -> SoundByte:
    post = await get_post(session, post_id)
    following = await accounts.following_ids(session, viewer_id) if viewer_id else set()
    if not can_view(post, viewer_id, following):
        raise errors.NotFound("SoundByte not found")
    return post


async def list_feed(
    session: AsyncSession,
    viewer_id: str | None,
    *,
    limit: int,
    skip: int,
) -> tuple[int, list[SoundByte]]:
    """Newest-first page of posts the viewer may see, plus the total count."""
    visible = SoundByte.visibility == "public"
    if viewer_id is not None:
        following = await accounts.following_ids(session, viewer_id)
        visible = or_(
            visible,
            SoundByte.author_id == viewer_id,
            and_(SoundByte.visibility == "friends", SoundByte.author_id.in_(following)),
        )

    total = (await session.execute(
        select(func.count()).select_from(SoundByte).where(visible)
    )).scalar_one()
    rows = (await session.execute(
        select(SoundByte)
        .where(visible)
        .order_by(SoundByte.created_at.desc(), SoundByte.id)
        .offset(skip)
        .limit(limit)
    )).scalars().all()
    return total, list(rows)


async def create_post(
    session: AsyncSession,
    registry: TrackRegistry,
    author: User,
    request: SoundByteCreate,
) -> SoundByte:
    """Create a post owned by ``author``, linking it to a track when asked."""
    post = SoundByte(
        author=author,
        author_id=author.id,
        caption=request.caption,
        source_url=request.source_url,
        audio_url=request.audio_url,
        tags=request.tags,
        visibility=request.visibility,
        likes_count=0,
        comments_count=0,
        comments=[],
    )
    link = request.track_link()
    if link is not None:
        await link_track(session, registry, post, link)
    session.add(post)
    await session.flush()
    logger.info("Created post %s by %s (track=%s)", post.id, author.id[:8], post.track_id)
    return post


async def update_post(
    session: AsyncSession,
    registry: TrackRegistry,
    post: SoundByte,
    actor_id: str,
    request: SoundByteUpdate,
) -> SoundByte:
    """Apply a partial update. Author only; the author itself never changes."""
    require_author(post, actor_id)

    link = request.track_link()
    if link is not None:
        await link_track(session, registry, post, link)
    elif request.wants_unlink():
        clear_snapshot(post)

    for field in ("caption", "source_url", "audio_url", "tags", "visibility"):
        if field in request.model_fields_set:
            value = getattr(request, field)
            if field in ("caption", "visibility") and value is None:
                continue
            if field == "tags" and value is None:
                value = []
            setattr(post, field, value)

    await session.flush()
    return post


async def delete_post(session: AsyncSession, post: SoundByte, actor_id: str) -> str:
    """Delete a post with its comments and likes. Author only."""
    require_author(post, actor_id)
    post_id = post.id
    await session.execute(delete(SoundByteLike).where(SoundByteLike.sound_byte_id == post_id))
    await session.delete(post)
    await session.flush()
    logger.info("Deleted post %s", post_id)
    return post_id
