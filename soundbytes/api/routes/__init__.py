"""API route modules, each exposing ``router``."""
from __future__ import annotations

from soundbytes.api.routes import auth, health, sound_bytes, tracks, users

__all__ = ["auth", "health", "sound_bytes", "tracks", "users"]
