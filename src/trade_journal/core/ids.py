"""Canonical ID and hashing factories.

All modules import from here instead of defining local ``_uuid()`` copies.

ID Categories
-------------
1. Internal IDs: UUID v4 strings (trade_id, import_id).
2. Content-derived IDs: SHA256[:N] deterministic hashes of the raw file,
   used to recognise a re-import of byte-identical content.
"""

from __future__ import annotations

import hashlib
import uuid


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for all internal entity IDs."""
    return str(uuid.uuid4())


def content_hash(*parts: str, length: int = 16) -> str:
    """Generate a deterministic SHA256-based ID from content strings.

    Concatenates all *parts* with ``':'`` before hashing.

    Parameters
    ----------
    *parts:
        Strings to hash together.
    length:
        Number of hex characters to return (default 16).
    """
    raw = ":".join(parts)
    return hashlib.sha256(raw.encode()).hexdigest()[:length]
