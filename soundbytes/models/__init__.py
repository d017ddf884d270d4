"""Pydantic wire models for the SoundBytes API."""
from __future__ import annotations

from soundbytes.models.base import CamelModel
from soundbytes.models.tracks import TrackAttrs, TrackLink, TrackResponse
from soundbytes.models.users import (
    PrivateProfile,
    PublicProfile,
    SignInRequest,
    SignUpRequest,
    TokenResponse,
    UserSummary,
)
from soundbytes.models.sound_bytes import (
    CommentResponse,
    FeedPage,
    SoundByteCreate,
    SoundByteResponse,
    SoundByteUpdate,
)

__all__ = [
    "CamelModel",
    "TrackAttrs",
    "TrackLink",
    "TrackResponse",
    "PrivateProfile",
    "PublicProfile",
    "SignInRequest",
    "SignUpRequest",
    "TokenResponse",
    "UserSummary",
    "CommentResponse",
    "FeedPage",
    "SoundByteCreate",
    "SoundByteResponse",
    "SoundByteUpdate",
]
