# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Download manifest: URL templates, preferred versions and artifact digests."""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError


class ToolManifestEntry(BaseModel):
    """Expected size and SHA-256 digest of one artifact file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sha256: str = Field(alias="SHA-256", pattern=r"^[0-9a-fA-F]{64}$")
    size: int = Field(alias="Size", ge=0)


class ToolDownloadInfo(BaseModel):
    """Manifest section describing where and what to download for one tool."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    download_url_template: str = Field(default="", alias="DownloadUrlTemplate")
    filename_template: str = Field(default="", alias="FilenameTemplate")
    preferred_version: str = Field(default="", alias="PreferredVersion")
    files: dict[str, ToolManifestEntry] = Field(default_factory=dict, alias="Files")


class DownloadManifest(BaseModel):
    """All manifest sections keyed by tool."""

    model_config = ConfigDict(frozen=True)

    tools: dict[str, ToolDownloadInfo] = Field(default_factory=dict)

    def info_for(self, key: str) -> ToolDownloadInfo:
        """Return the section for *key*, or an empty section when absent."""
        return self.tools.get(key) or ToolDownloadInfo()


def load_manifest(path: Path) -> DownloadManifest:
    """Parse the download manifest at *path*.

    Args:
        path: Location of ``downloads.toml``.

    Returns:
        DownloadManifest: Validated manifest.

    Raises:
        ConfigurationError: The file is missing, unreadable or invalid.
    """

    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Download manifest {path} does not exist") from exc
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Failed to read download manifest {path}: {exc}") from exc

    try:
        return DownloadManifest.model_validate({"tools": data})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid download manifest {path}: {exc}") from exc


__all__ = ["DownloadManifest", "ToolDownloadInfo", "ToolManifestEntry", "load_manifest"]
