# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Streaming tar extraction guarded by entry filters and path transforms."""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Protocol

from .errors import ArchiveShapeError

LOGGER = logging.getLogger(__name__)

_IGNORED_TYPES = frozenset({tarfile.SYMTYPE, tarfile.XGLTYPE})


class FilterMode(str, Enum):
    """What extraction does with an entry the filter does not accept."""

    SKIP = "skip"
    REJECT = "reject"


class EntryFilter(Protocol):
    """Decides which archive entries are extracted."""

    @property
    def mode(self) -> FilterMode: ...

    def accepts(self, name: str) -> bool: ...


class EntryTransform(Protocol):
    """Maps an accepted archive entry name to its on-disk destination."""

    def __call__(self, name: str) -> Path: ...


def normalize_entry_name(name: str) -> str:
    """Return *name* without a leading ``./`` or trailing ``/``."""
    while name.startswith("./"):
        name = name[2:]
    return name.rstrip("/")


@dataclass(frozen=True, slots=True)
class PrefixFilter:
    """Accept entries equal to or beneath one of ``roots``.

    Attributes:
        roots: Archive-relative directory names, without trailing slash.
        mode: Handling of entries that fall outside every root.
        include_parents: Also accept the directories leading to a root, so a
            subtree slice is materialised together with its parents.
    """

    roots: tuple[str, ...]
    mode: FilterMode = FilterMode.REJECT
    include_parents: bool = False

    def accepts(self, name: str) -> bool:
        entry = normalize_entry_name(name)
        for root in self.roots:
            if entry == root or entry.startswith(f"{root}/"):
                return True
            if self.include_parents and root.startswith(f"{entry}/"):
                return True
        return False


@dataclass(frozen=True, slots=True)
class StripPrefixTransform:
    """Strip ``prefix`` from entry names and rebase them under ``destination``.

    Names shorter than the prefix (parents of the prefix) map to
    ``destination`` itself.
    """

    prefix: str
    destination: Path

    def __call__(self, name: str) -> Path:
        entry = normalize_entry_name(name)
        relative = entry[min(len(entry), len(self.prefix)) :].lstrip("/")
        if not relative:
            return self.destination
        parts = PurePosixPath(relative).parts
        if ".." in parts:
            raise ArchiveShapeError(f"archive entry {name!r} escapes {self.destination}")
        return self.destination.joinpath(*parts)


def _entry_times(member: tarfile.TarInfo) -> tuple[float, float]:
    mtime = float(member.mtime)
    atime = member.pax_headers.get("atime")
    return (float(atime) if atime else mtime), mtime


def extract_archive(archive: Path, entry_filter: EntryFilter, transform: EntryTransform) -> list[Path]:
    """Extract *archive* entry by entry.

    Compression (none, gzip, bzip2 or xz) is detected from the stream.
    Symbolic links and pax global headers are ignored; hard links and
    other special entries inside the filter are errors. Entries the filter
    rejects are skipped or fail the extraction depending on
    ``entry_filter.mode``. Directory times are restored after every entry has
    been written, children before parents.

    Args:
        archive: Path to the tar file.
        entry_filter: Filter deciding which entries to extract.
        transform: Maps accepted entry names to destinations.

    Returns:
        list[Path]: Regular files written, in archive order.

    Raises:
        ArchiveShapeError: An entry is rejected, escapes the destination or
            has an unsupported type.
    """

    written: list[Path] = []
    directories: list[tuple[Path, float, float]] = []
    try:
        with tarfile.open(archive, mode="r|*") as tar:
            for member in tar:
                if member.type in _IGNORED_TYPES:
                    LOGGER.debug("ignoring symlink or global header %s", member.name)
                    continue
                if not entry_filter.accepts(member.name):
                    if entry_filter.mode is FilterMode.REJECT:
                        raise ArchiveShapeError(f"{archive}: unexpected entry {member.name!r}")
                    LOGGER.debug("skipping %s", member.name)
                    continue
                destination = transform(member.name)
                atime, mtime = _entry_times(member)
                if member.isdir():
                    destination.mkdir(mode=member.mode, parents=True, exist_ok=True)
                    directories.append((destination, atime, mtime))
                elif member.isreg():
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    source = tar.extractfile(member)
                    if source is None:
                        raise ArchiveShapeError(f"{archive}: cannot read {member.name!r}")
                    with source, destination.open("wb") as handle:
                        shutil.copyfileobj(source, handle)
                    os.chmod(destination, member.mode)
                    os.utime(destination, (atime, mtime))
                    written.append(destination)
                else:
                    raise ArchiveShapeError(
                        f"{archive}: unexpected type {member.type!r} in tar header for {member.name!r}"
                    )
    except tarfile.TarError as exc:
        raise ArchiveShapeError(f"{archive}: {exc}") from exc

    for directory, atime, mtime in reversed(directories):
        os.utime(directory, (atime, mtime))
    return written


def filter_pair(
    roots: Sequence[str],
    destination: Path,
    *,
    strip: str,
    mode: FilterMode = FilterMode.REJECT,
    include_parents: bool = False,
) -> tuple[PrefixFilter, StripPrefixTransform]:
    """Build the filter and transform used to unpack one tool archive."""
    return (
        PrefixFilter(tuple(roots), mode=mode, include_parents=include_parents),
        StripPrefixTransform(strip, destination),
    )


__all__ = [
    "EntryFilter",
    "EntryTransform",
    "FilterMode",
    "PrefixFilter",
    "StripPrefixTransform",
    "extract_archive",
    "filter_pair",
    "normalize_entry_name",
]
