# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for fetching artifacts into the download cache."""

from __future__ import annotations

from pathlib import Path

import pytest
import requests

from toolboot.download import download_to_cache
from toolboot.errors import DownloadError


class FakeResponse:
    def __init__(self, status_code: int = 200, chunks: list[bytes] | None = None, reason: str = "OK") -> None:
        self.status_code = status_code
        self.reason = reason
        self._chunks = chunks or []
        self.headers = {"Content-Length": str(sum(len(chunk) for chunk in self._chunks))}

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def iter_content(self, chunk_size: int):  # noqa: ANN201
        yield from self._chunks


class RecordingProgress:
    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def start(self, url: str, total: int | None) -> None:
        self.events.append(("start", total))

    def advance(self, size: int) -> None:
        self.events.append(("advance", size))

    def finish(self) -> None:
        self.events.append(("finish", None))


def test_download_writes_artifact_and_sends_user_agent(monkeypatch, tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def fake_get(url, headers=None, stream=False):  # noqa: ANN001
        seen.update(url=url, headers=headers, stream=stream)
        return FakeResponse(chunks=[b"abc", b"", b"def"])

    monkeypatch.setattr("toolboot.download.requests.get", fake_get)
    progress = RecordingProgress()
    cache = tmp_path / "cache"

    result = download_to_cache(
        "https://example.invalid/tool-1.0.tar.gz",
        cache,
        cache / "tool-1.0.tar.gz",
        user_agent="toolboot-tests",
        progress=progress,
    )

    assert result.read_bytes() == b"abcdef"
    assert sorted(path.name for path in cache.iterdir()) == ["tool-1.0.tar.gz"]
    assert seen == {
        "url": "https://example.invalid/tool-1.0.tar.gz",
        "headers": {"User-Agent": "toolboot-tests"},
        "stream": True,
    }
    assert progress.events == [("start", 6), ("advance", 3), ("advance", 3), ("finish", None)]


def test_non_success_status_leaves_nothing_behind(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "toolboot.download.requests.get",
        lambda url, headers=None, stream=False: FakeResponse(404, reason="Not Found"),
    )
    cache = tmp_path / "cache"

    with pytest.raises(DownloadError, match="404 Not Found"):
        download_to_cache("https://example.invalid/missing.tar.gz", cache, cache / "missing.tar.gz")

    assert list(cache.iterdir()) == []


def test_transport_errors_become_download_errors(monkeypatch, tmp_path: Path) -> None:
    def fake_get(url, headers=None, stream=False):  # noqa: ANN001
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr("toolboot.download.requests.get", fake_get)
    cache = tmp_path / "cache"

    with pytest.raises(DownloadError, match="connection refused"):
        download_to_cache("https://example.invalid/a.tar.gz", cache, cache / "a.tar.gz")

    assert list(cache.iterdir()) == []
