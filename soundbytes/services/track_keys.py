"""Track identity keys.

A canonical Track is identified by ``artist::title::sound_clip_url`` after
each part is trimmed, lowercased and has internal whitespace collapsed.
The format is persisted in ``tracks.key`` and must stay byte-for-byte
stable; rows written by earlier deployments are looked up with it.

"Whitespace" here is the ECMAScript ``\\s`` class those rows were keyed
with, not Python's ``str.isspace()``: U+FEFF counts, while the C0
separators U+001C..U+001F and U+0085 do not.
"""
from __future__ import annotations

import re

KEY_DELIMITER = "::"

WHITESPACE_CHARS = (
    "\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)

_EDGES = re.compile(rf"\A[{WHITESPACE_CHARS}]+|[{WHITESPACE_CHARS}]+\Z")
_RUNS = re.compile(f"[{WHITESPACE_CHARS}]+")


def trim_whitespace(value: str) -> str:
    """Strip leading and trailing key whitespace."""
    return _EDGES.sub("", value)


def normalize_key_part(value: str | None) -> str:
    """Trim, lowercase and collapse whitespace runs to a single space.

    ``None`` normalizes to the empty string.
    """
    if not value:
        return ""
    return _RUNS.sub(" ", trim_whitespace(str(value)).lower())


def derive_key(artist: str | None, title: str | None, sound_clip_url: str | None = None) -> str:
    """Return the identity key for a track.

    A missing clip URL is kept as an empty segment rather than dropped, so
    the same artist/title with a different (or no) clip resolves to a
    different Track.

    >>> derive_key("Daft  Punk", " One More Time ")
    'daft punk::one more time::'
    """
    return KEY_DELIMITER.join(
        (
            normalize_key_part(artist),
            normalize_key_part(title),
            normalize_key_part(sound_clip_url),
        )
    )
