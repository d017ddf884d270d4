"""User and auth wire models."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field, field_validator

from soundbytes.models.base import CamelModel
from soundbytes.models.tracks import check_http_url

Visibility = Literal["public", "friends", "private"]

USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]{3,30}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_username(value: str) -> str:
    return value.strip().lower()


def normalize_email(value: str) -> str:
    return value.strip().lower()


class SignUpRequest(CamelModel):
    username: str
    email: str
    password: str = Field(..., min_length=8, max_length=256)

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = normalize_username(v)
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username must be 3–30 chars (letters, numbers, underscore, dot).")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = normalize_email(v)
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("email is not valid")
        return v


class SignInRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        return normalize_username(v)


class TokenResponse(CamelModel):
    token: str


class UserSummary(CamelModel):
    """Minimal user reference embedded in posts and comments."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str


class ProfileSettings(CamelModel):
    visibility: Visibility = "public"
    allow_dms: bool = Field(default=True, alias="allowDMs")


class ProfileSettingsUpdate(CamelModel):
    """Partial settings; omitted or null keys keep their stored value."""

    visibility: Visibility | None = None
    allow_dms: bool | None = Field(default=None, alias="allowDMs")


class JukeboxStats(CamelModel):
    """Most frequent genres and artists in the jukebox, most common first."""

    top_genres: list[str] = Field(default_factory=list)
    top_artists: list[str] = Field(default_factory=list)


class PublicProfile(CamelModel):
    id: str
    username: str
    display_name: str
    avatar_url: str | None = None
    bio: str | None = None
    genres: list[str] = Field(default_factory=list)
    followers_count: int = 0
    following_count: int = 0
    settings: ProfileSettings = Field(default_factory=ProfileSettings)


class PrivateProfile(PublicProfile):
    """The caller's own profile. Never includes credential material."""

    email: str
    jukebox_stats: JukeboxStats = Field(default_factory=JukeboxStats)
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(CamelModel):
    display_name: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = None
    bio: str | None = Field(default=None, max_length=280)
    genres: list[str] | None = None
    settings: ProfileSettingsUpdate | None = None

    @field_validator("avatar_url")
    @classmethod
    def _http_url(cls, v: str | None) -> str | None:
        return check_http_url(v)

    @field_validator("display_name", "bio")
    @classmethod
    def _trim(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("genres")
    @classmethod
    def _genres(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        seen: list[str] = []
        for g in v:
            g = g.strip().lower()
            if g and g not in seen:
                seen.append(g)
        return seen


class FollowResult(CamelModel):
    following: bool
    user_id: str
