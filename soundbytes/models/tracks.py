"""Track wire models — caller-supplied attributes, references, and responses."""
from __future__ import annotations

import re
from datetime import datetime

from pydantic import ConfigDict, Field, field_validator, model_validator

from soundbytes.models.base import CamelModel
from soundbytes.services.track_keys import trim_whitespace

_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def check_http_url(value: str | None) -> str | None:
    """Trim a URL field; reject anything that is not http(s). Blank becomes None."""
    if value is None:
        return None
    value = trim_whitespace(value)
    if not value:
        return None
    if not _HTTP_URL.match(value):
        raise ValueError("must be an http(s) URL")
    return value


class TrackAttrs(CamelModel):
    """Raw track attributes supplied by a caller when no track id is known."""

    title: str = Field(..., max_length=500)
    artist: str = Field(..., max_length=500)
    genre: str | None = Field(default=None, max_length=100)
    cover_art_url: str | None = None
    sound_clip_url: str | None = None
    source_url: str | None = None

    @field_validator("title", "artist")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = trim_whitespace(v)
        if not v:
            raise ValueError("title and artist are required")
        return v

    @field_validator("genre")
    @classmethod
    def _trim_genre(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("cover_art_url", "sound_clip_url", "source_url")
    @classmethod
    def _http_urls(cls, v: str | None) -> str | None:
        return check_http_url(v)


class TrackLink(CamelModel):
    """Either a reference to an existing Track or raw attributes to resolve.

    Exactly one of ``track_id`` / ``track`` must be set.
    """

    track_id: str | None = None
    track: TrackAttrs | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "TrackLink":
        if (self.track_id is None) == (self.track is None):
            raise ValueError("provide exactly one of trackId or track")
        return self


class TrackResponse(CamelModel):
    """Canonical Track as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    key: str
    title: str
    artist: str
    genre: str | None = None
    cover_art_url: str | None = None
    sound_clip_url: str | None = None
    source_url: str | None = None
    created_at: datetime
