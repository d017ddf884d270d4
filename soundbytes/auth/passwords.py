"""Password hashing.

Hashes are produced and checked by ``werkzeug.security`` in its
``pbkdf2:sha256:<iterations>$<salt>$<hex>`` layout. The iteration count is
stored in each hash; raising ``SOUNDBYTES_PASSWORD_HASH_ITERATIONS`` only
affects new hashes.
"""
from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash

from soundbytes.config import settings


def hash_password(password: str, iterations: int | None = None) -> str:
    """Return a salted PBKDF2 hash of ``password``."""
    iterations = iterations or settings.password_hash_iterations
    return generate_password_hash(password, method=f"pbkdf2:sha256:{iterations}")


def verify_password(stored_hash: str, password: str) -> bool:
    """Constant-time check of ``password`` against a stored hash."""
    if not stored_hash:
        return False
    try:
        return check_password_hash(stored_hash, password)
    except ValueError:
        # Unknown method or a non-numeric iteration count
        return False
