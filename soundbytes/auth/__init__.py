"""
SoundBytes Authentication Module

Password hashing, JWT issuance/validation, and the FastAPI dependencies that
turn a bearer token into a verified identity.
"""
from __future__ import annotations

from soundbytes.auth.tokens import (
    generate_access_code,
    validate_access_code,
    AccessCodeError,
)
from soundbytes.auth.dependencies import (
    Identity,
    get_current_user,
    optional_token,
    require_identity,
    require_valid_token,
)

__all__ = [
    "generate_access_code",
    "validate_access_code",
    "AccessCodeError",
    "Identity",
    "get_current_user",
    "optional_token",
    "require_identity",
    "require_valid_token",
]
