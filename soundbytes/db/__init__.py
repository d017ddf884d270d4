"""
Database module for SoundBytes.

Provides async SQLAlchemy support with PostgreSQL and SQLite.
"""
from __future__ import annotations

from soundbytes.db.database import (
    get_db,
    init_db,
    close_db,
)
from soundbytes.db.models import (
    Comment,
    JukeboxEntry,
    SoundByte,
    SoundByteLike,
    Track,
    User,
    UserFollow,
)

__all__ = [
    "get_db",
    "init_db",
    "close_db",
    "Comment",
    "JukeboxEntry",
    "SoundByte",
    "SoundByteLike",
    "Track",
    "User",
    "UserFollow",
]
