"""Engagement on posts — like/comment counters and the comment lifecycle.

Counters
--------
``likes_count`` and ``comments_count`` never go below zero. Increments and
decrements are single-row atomic UPDATEs, and the decrement is written as
``CASE WHEN n > 0 THEN n - 1 ELSE 0 END`` so out-of-order concurrent
decrements saturate at the floor. The ORM hook in ``soundbytes.db.models``
re-checks the floor before any write of the row.

Comments
--------
``created → edited* → deleted``. Only a comment's author may edit or delete
it. A comment id that is not in the post is ``NotFound``, including one that
was already deleted.
A comment's ``seq`` is taken from the post's ``last_comment_seq`` counter
with the same atomic UPDATE, so it is never reused.
"""
from __future__ import annotations

import logging

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from soundbytes import errors
from soundbytes.db.models import Comment, SoundByte, SoundByteLike, User

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("likes_count", "comments_count")


def _counter_column(field: str) -> InstrumentedAttribute[int]:
    if field not in COUNTER_FIELDS:
        raise ValueError(f"Unknown counter: {field}")
    return getattr(SoundByte, field)


async def _apply(session: AsyncSession, post: SoundByte, field: str, expr: object) -> int:
    await session.execute(
        update(SoundByte)
        .where(SoundByte.id == post.id)
        .values({field: expr})
        .execution_options(synchronize_session=False)
    )
    await session.refresh(post, [field, "updated_at"])
    value: int = getattr(post, field)
    return value


async def increment(session: AsyncSession, post: SoundByte, field: str) -> int:
    """Atomically add one to a counter and return the new value."""
    column = _counter_column(field)
    return await _apply(session, post, field, column + 1)


async def decrement(session: AsyncSession, post: SoundByte, field: str) -> int:
    """Atomically subtract one from a counter, saturating at zero."""
    column = _counter_column(field)
    return await _apply(session, post, field, case((column > 0, column - 1), else_=0))


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------


async def _has_liked(session: AsyncSession, post_id: str, user_id: str) -> bool:
    found = (await session.execute(
        select(SoundByteLike.user_id).where(
            SoundByteLike.user_id == user_id,
            SoundByteLike.sound_byte_id == post_id,
        )
    )).scalar_one_or_none()
    return found is not None


async def like(session: AsyncSession, post: SoundByte, user_id: str) -> int:
    """Record ``user_id``'s like. Idempotent; returns the like count."""
    try:
        async with session.begin_nested():
            session.add(SoundByteLike(user_id=user_id, sound_byte_id=post.id))
            await session.flush()
    except IntegrityError as exc:
        if not await _has_liked(session, post.id, user_id):
            # Not a duplicate; a missing user or post
            raise errors.Unavailable("Could not record the like") from exc
        return post.likes_count
    return await increment(session, post, "likes_count")


async def unlike(session: AsyncSession, post: SoundByte, user_id: str) -> int:
    """Withdraw ``user_id``'s like. Idempotent; the count never drops below zero."""
    result = await session.execute(
        delete(SoundByteLike).where(
            SoundByteLike.user_id == user_id,
            SoundByteLike.sound_byte_id == post.id,
        )
    )
    if not result.rowcount:  # type: ignore[attr-defined]
        return post.likes_count
    return await decrement(session, post, "likes_count")


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


def find_comment(post: SoundByte, comment_id: str) -> Comment:
    for comment in post.comments:
        if comment.id == comment_id:
            return comment
    raise errors.NotFound("Comment not found")


def _require_author(comment: Comment, actor_id: str, action: str) -> None:
    if comment.author_id != actor_id:
        logger.warning("User %s tried to %s comment %s", actor_id[:8], action, comment.id)
        raise errors.Forbidden(f"You are not authorized to {action} this comment")


async def add_comment(
    session: AsyncSession,
    post: SoundByte,
    author: User,
    body: str,
) -> Comment:
    """Append a comment authored by the verified ``author``."""
    next_seq = await _apply(session, post, "last_comment_seq", SoundByte.last_comment_seq + 1)
    comment = Comment(author=author, author_id=author.id, body=body, seq=next_seq)
    post.comments.append(comment)
    await session.flush()
    await increment(session, post, "comments_count")
    return comment


async def edit_comment(
    session: AsyncSession,
    post: SoundByte,
    comment_id: str,
    actor_id: str,
    body: str,
) -> Comment:
    """Replace the comment's body. Author only."""
    comment = find_comment(post, comment_id)
    _require_author(comment, actor_id, "edit")
    comment.body = body
    await session.flush()
    return comment


async def delete_comment(
    session: AsyncSession,
    post: SoundByte,
    comment_id: str,
    actor_id: str,
) -> None:
    """Remove the comment, keeping the order of the rest. Author only."""
    comment = find_comment(post, comment_id)
    _require_author(comment, actor_id, "delete")
    post.comments.remove(comment)
    await session.flush()
    await decrement(session, post, "comments_count")
