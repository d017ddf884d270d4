"""
SQLAlchemy ORM models for SoundBytes.

Tables:
- users: Accounts (credential material never leaves this layer)
- user_follows: Social graph edges (one row per follower×followee pair)
- tracks: Canonical, deduplicated musical tracks keyed by derived identity key
- sound_bytes: Posts, with a denormalized snapshot of the linked track
- sound_byte_comments: Comments owned by a post (cascade-deleted with it)
- sound_byte_likes: Per-user likes (one row per user×post pair)
- jukebox_entries: Per-user ordered, duplicate-free playlist of tracks
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from soundbytes.db.database import Base


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


class User(Base):
    """
    User account.

    ``username`` and ``email`` are stored trimmed and lowercased; the
    accounts service normalizes before insert so the unique constraints
    compare canonical values.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(280), nullable=True)
    genres: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Settings
    profile_visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="public")
    allow_dms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.id[:8]} @{self.username}>"


class UserFollow(Base):
    """A single follower → followee edge.

    The unique constraint makes following idempotent at the storage layer.
    """
    __tablename__ = "user_follows"
    __table_args__ = (UniqueConstraint("follower_id", "followee_id", name="uq_user_follows_pair"),)

    follow_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    follower_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    followee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False,
    )


class Track(Base):
    """
    Canonical musical track, shared by every post and jukebox that references it.

    ``key`` is the derived identity (see ``soundbytes.services.track_keys``).
    Its unique constraint is the only guard against duplicate canonical
    records when two requests race to create the same track. Tracks are
    never deleted.
    """
    __tablename__ = "tracks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    key: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    artist: Mapped[str] = mapped_column(String(500), nullable=False)
    genre: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cover_art_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    sound_clip_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Track {self.id[:8]} {self.artist!r} - {self.title!r}>"


class SoundByte(Base):
    """
    A post. Owned by ``author_id`` for every mutation.

    The ``title`` … ``sound_clip_url`` columns are a snapshot of the linked
    Track taken at link time, so the feed renders without joining tracks.
    Only the denormalizer writes them.
    """
    __tablename__ = "sound_bytes"
    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_sound_bytes_likes_nonneg"),
        CheckConstraint("comments_count >= 0", name="ck_sound_bytes_comments_nonneg"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    caption: Mapped[str] = mapped_column(Text, nullable=False)

    # Link to canonical Track plus denormalized display fields
    track_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("tracks.id"), nullable=True, index=True,
    )
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    artist: Mapped[str | None] = mapped_column(String(500), nullable=True)
    genre: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    cover_art_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    sound_clip_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    # Caller-supplied links (YouTube/Spotify page, direct audio)
    source_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    audio_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="public")

    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # High-water mark of Comment.seq; never reused after a delete
    last_comment_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False,
    )

    author: Mapped[User] = relationship("User", lazy="selectin")
    comments: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="sound_byte",
        cascade="all, delete-orphan",
        order_by="Comment.seq",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<SoundByte {self.id[:8]} by {self.author_id[:8]} likes={self.likes_count}>"


class Comment(Base):
    """A comment inside a post.

    ``seq`` is drawn from the post's ``last_comment_seq`` counter by an
    atomic UPDATE, so it is unique within the post and never reused after a
    delete. Ordering by it is insertion order.
    """
    __tablename__ = "sound_byte_comments"
    __table_args__ = (
        UniqueConstraint("sound_byte_id", "seq", name="uq_sound_byte_comments_seq"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    sound_byte_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sound_bytes.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False,
    )

    sound_byte: Mapped[SoundByte] = relationship("SoundByte", back_populates="comments")
    author: Mapped[User] = relationship("User", lazy="selectin")


class SoundByteLike(Base):
    """One user's like on one post — the ``likedSoundBytes`` set, row-per-member."""
    __tablename__ = "sound_byte_likes"
    __table_args__ = (UniqueConstraint("user_id", "sound_byte_id", name="uq_sound_byte_likes_pair"),)

    like_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    sound_byte_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sound_bytes.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False,
    )


class JukeboxEntry(Base):
    """A track in a user's jukebox.

    The (user_id, track_id) unique constraint gives the sequence set
    semantics; ``position`` preserves the order tracks were added in.
    """
    __tablename__ = "jukebox_entries"
    __table_args__ = (UniqueConstraint("user_id", "track_id", name="uq_jukebox_entries_user_track"),)

    entry_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    track_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tracks.id"), nullable=False, index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False,
    )

    track: Mapped[Track] = relationship("Track", lazy="selectin")


@event.listens_for(SoundByte, "before_insert")
@event.listens_for(SoundByte, "before_update")
def _floor_counters(mapper: Any, connection: Any, target: SoundByte) -> None:
    """Never persist a negative counter, whatever path produced it."""
    if (target.likes_count or 0) < 0:
        target.likes_count = 0
    if (target.comments_count or 0) < 0:
        target.comments_count = 0
