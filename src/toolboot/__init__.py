# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""toolboot: download, verify, unpack, build and record build tools."""

from __future__ import annotations

from importlib import metadata

try:
    __version__ = metadata.version("toolboot")
except metadata.PackageNotFoundError:  # pragma: no cover - editable checkouts
    __version__ = "0.0.0"

__all__ = ["__version__"]
