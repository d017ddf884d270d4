"""SoundByte (post) and comment wire models."""
from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict, Field, field_validator, model_validator

from soundbytes.models.base import CamelModel
from soundbytes.models.tracks import TrackAttrs, TrackLink, check_http_url
from soundbytes.models.users import UserSummary, Visibility


def _normalize_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    out: list[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in out:
            out.append(tag)
    return out


class _PostFields(CamelModel):
    """Fields shared by create and update. Track link: ``trackId`` or ``track``."""

    track_id: str | None = None
    track: TrackAttrs | None = None
    source_url: str | None = None
    audio_url: str | None = None

    @field_validator("source_url", "audio_url")
    @classmethod
    def _http_urls(cls, v: str | None) -> str | None:
        return check_http_url(v)

    @model_validator(mode="after")
    def _one_track_reference(self) -> "_PostFields":
        if self.track_id is not None and self.track is not None:
            raise ValueError("provide either trackId or track, not both")
        return self

    def track_link(self) -> TrackLink | None:
        """The requested link, or None when neither field carries one."""
        if self.track_id is not None:
            return TrackLink(track_id=self.track_id)
        if self.track is not None:
            return TrackLink(track=self.track)
        return None


class SoundByteCreate(_PostFields):
    caption: str = Field(..., max_length=5000)
    tags: list[str] = Field(default_factory=list)
    visibility: Visibility = "public"

    @field_validator("caption")
    @classmethod
    def _caption(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("caption is required")
        return v

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v) or []


class SoundByteUpdate(_PostFields):
    """Partial update. The author is never taken from input.

    Sending ``"track": null`` or ``"trackId": null`` (without the other)
    unlinks the post from its track.
    """

    caption: str | None = Field(default=None, max_length=5000)
    tags: list[str] | None = None
    visibility: Visibility | None = None

    @field_validator("caption")
    @classmethod
    def _caption(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("caption cannot be blank")
        return v

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: list[str] | None) -> list[str] | None:
        return _normalize_tags(v)

    def wants_unlink(self) -> bool:
        touched = self.model_fields_set & {"track", "track_id"}
        return bool(touched) and self.track is None and self.track_id is None


class CommentCreate(CamelModel):
    body: str = Field(..., max_length=10000)

    @field_validator("body")
    @classmethod
    def _body(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("body is required")
        return v


class CommentUpdate(CommentCreate):
    pass


class CommentResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    author: UserSummary
    body: str
    created_at: datetime
    updated_at: datetime


class SoundByteResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    author: UserSummary
    caption: str
    track_id: str | None = None
    title: str | None = None
    artist: str | None = None
    genre: str | None = None
    cover_art_url: str | None = None
    sound_clip_url: str | None = None
    source_url: str | None = None
    audio_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    visibility: Visibility
    likes_count: int
    comments_count: int
    comments: list[CommentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class FeedPage(CamelModel):
    total: int
    limit: int
    skip: int
    items: list[SoundByteResponse]


class LikeResult(CamelModel):
    id: str
    likes_count: int
    liked: bool


class DeleteResult(CamelModel):
    ok: bool = True
    deleted_id: str
