# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Fetch artifacts into the download cache."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Protocol

import requests

from .errors import DownloadError

LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16


class DownloadProgress(Protocol):
    """Receives progress notifications while an artifact streams to disk."""

    def start(self, url: str, total: int | None) -> None: ...

    def advance(self, size: int) -> None: ...

    def finish(self) -> None: ...


def ensure_download_dir(cache_dir: Path) -> Path:
    """Create *cache_dir* (mode ``0o750`` before umask) when missing and return it."""
    cache_dir.mkdir(mode=0o750, parents=True, exist_ok=True)
    return cache_dir


def download_to_cache(
    url: str,
    cache_dir: Path,
    dest_path: Path,
    *,
    user_agent: str | None = None,
    progress: DownloadProgress | None = None,
) -> Path:
    """Stream *url* into *dest_path* through a temporary file in *cache_dir*.

    The temporary file is renamed onto ``dest_path`` only once the whole body
    has been received with a 2xx status, so a partially written artifact never
    appears under its final name.

    Args:
        url: Artifact URL.
        cache_dir: Directory holding the temporary file; must share a
            filesystem with ``dest_path``.
        dest_path: Final location of the artifact.
        user_agent: Value for the ``User-Agent`` header.
        progress: Optional progress sink.

    Returns:
        Path: ``dest_path``.

    Raises:
        DownloadError: The request failed or returned a non-2xx status.
    """

    ensure_download_dir(cache_dir)
    headers = {"User-Agent": user_agent} if user_agent else {}
    fd, temp_name = tempfile.mkstemp(prefix=".download-", dir=cache_dir)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            _stream(url, headers, handle, progress)
        os.replace(temp_path, dest_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    LOGGER.debug("downloaded %s to %s", url, dest_path)
    return dest_path


def _stream(url: str, headers: dict[str, str], handle: BinaryIO, progress: DownloadProgress | None) -> None:
    try:
        response = requests.get(url, headers=headers, stream=True)
    except requests.RequestException as exc:
        raise DownloadError(f"GET {url} failed: {exc}") from exc
    with response:
        if not 200 <= response.status_code < 300:
            raise DownloadError(f"GET {url} => {response.status_code} {response.reason}")
        length = response.headers.get("Content-Length")
        total = int(length) if length and length.isdigit() else None
        if progress is not None:
            progress.start(url, total)
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                if not chunk:
                    continue
                handle.write(chunk)
                if progress is not None:
                    progress.advance(len(chunk))
        except requests.RequestException as exc:
            raise DownloadError(f"GET {url} failed while reading the body: {exc}") from exc
        finally:
            if progress is not None:
                progress.finish()


__all__ = ["DownloadProgress", "download_to_cache", "ensure_download_dir"]
