# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Size and SHA-256 verification for cached artifacts."""

from __future__ import annotations

import hashlib
from pathlib import Path

from .errors import IntegrityError

_CHUNK_SIZE = 1 << 16


def compute_sha256(path: Path) -> str:
    """Return the lowercase hex SHA-256 digest of the file at *path*."""
    hasher = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def verify_size(expected: int, path: Path) -> None:
    """Raise :class:`IntegrityError` unless *path* is exactly *expected* bytes long."""
    actual = path.stat().st_size
    if actual != expected:
        raise IntegrityError(f"{path}: expected size {expected} found size {actual}")


def verify_sha256(expected: str, path: Path) -> None:
    """Raise :class:`IntegrityError` unless *path* hashes to *expected*.

    The comparison ignores the case of the hex digits.
    """
    actual = compute_sha256(path)
    if actual != expected.strip().lower():
        raise IntegrityError(f"{path}: expected SHA-256 {expected} found SHA-256 {actual}")


__all__ = ["compute_sha256", "verify_sha256", "verify_size"]
