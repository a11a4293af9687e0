"""Streaming file digests used to validate cached downloads."""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def file_digest(path: Path, algorithm: str = "sha1") -> str:
    """Return the hex digest of ``path`` without loading it into memory."""
    hasher = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def matches_checksum(path: Path, expected: str | None, algorithm: str = "sha1") -> bool:
    """Return True when ``path`` exists and, if ``expected`` is given, hashes to it."""
    if not path.is_file():
        return False
    if not expected:
        return True
    return file_digest(path, algorithm) == expected.lower()


__all__ = ["file_digest", "matches_checksum"]
