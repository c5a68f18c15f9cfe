"""Content fingerprinting."""

from __future__ import annotations

import hashlib

from teleporter.exceptions import ChecksumError


def calculate_checksum(data: bytes | bytearray | memoryview) -> str:
    """Compute the lowercase hex SHA-256 digest of raw content.

    Text must be encoded by the caller; anything that is not a bytes-like
    object raises ChecksumError.
    """
    if not isinstance(data, bytes | bytearray | memoryview):
        msg = f"Checksum input must be bytes, got {type(data).__name__}"
        raise ChecksumError(msg)
    return hashlib.sha256(data).hexdigest()

