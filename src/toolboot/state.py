# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Persisted registry of tools installed into the toolchain directory."""

from __future__ import annotations

import os
import tempfile
import tomllib
from pathlib import Path
from typing import Final

import toml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import StateError

TOOLCHAIN_FILENAME: Final[str] = "toolchain.toml"
BANNER: Final[str] = (
    "# This file is managed by toolboot.\n"
    "# It is rewritten after every successful bootstrap; do not edit it by hand.\n"
)


class ToolchainRecord(BaseModel):
    """Installed executable (relative to the toolchain root) and its version."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    executable: str = Field(default="", alias="Executable")
    version: str = Field(default="", alias="Version")

    def resolve(self, toolchain_dir: Path) -> Path | None:
        """Return the absolute executable path, or ``None`` when unrecorded."""
        if not self.executable:
            return None
        return toolchain_dir / self.executable


class ToolchainRegistry(BaseModel):
    """All recorded tools keyed by registry key."""

    model_config = ConfigDict(validate_assignment=True)

    tools: dict[str, ToolchainRecord] = Field(default_factory=dict)

    def get(self, key: str) -> ToolchainRecord | None:
        return self.tools.get(key)

    def record(self, key: str, *, executable: str, version: str) -> ToolchainRecord:
        """Replace the entry for *key*, leaving every other entry untouched."""
        entry = ToolchainRecord(executable=executable, version=version)
        self.tools[key] = entry
        return entry

    def to_document(self) -> dict[str, dict[str, object]]:
        document: dict[str, dict[str, object]] = {}
        for key in sorted(self.tools):
            payload = self.tools[key].model_dump(by_alias=True)
            document[key] = {name: value for name, value in payload.items() if value not in ("", None)}
        return document


def toolchain_file(toolchain_dir: Path) -> Path:
    return toolchain_dir / TOOLCHAIN_FILENAME


def read_state(toolchain_dir: Path) -> ToolchainRegistry:
    """Load the registry from ``<toolchain_dir>/toolchain.toml``.

    Args:
        toolchain_dir: Toolchain root directory.

    Returns:
        ToolchainRegistry: Parsed registry; empty when the file does not exist.

    Raises:
        StateError: The file exists but cannot be read or parsed.
    """

    path = toolchain_file(toolchain_dir)
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError:
        return ToolchainRegistry()
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise StateError(f"Failed to read {path}: {exc}") from exc

    tools: dict[str, ToolchainRecord] = {}
    for key, value in data.items():
        if not isinstance(value, dict):
            raise StateError(f"{path}: entry {key!r} must be a table")
        try:
            tools[key] = ToolchainRecord.model_validate(value)
        except ValidationError as exc:
            raise StateError(f"{path}: invalid entry {key!r}: {exc}") from exc
    return ToolchainRegistry(tools=tools)


def write_state(toolchain_dir: Path, registry: ToolchainRegistry) -> Path:
    """Serialise the whole *registry* to ``<toolchain_dir>/toolchain.toml``.

    The document is written to a temporary file beside the target and renamed
    over it.

    Returns:
        Path: The registry file path.

    Raises:
        StateError: The file cannot be written.
    """

    path = toolchain_file(toolchain_dir)
    content = BANNER + "\n" + toml.dumps(registry.to_document())
    try:
        toolchain_dir.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{TOOLCHAIN_FILENAME}-", dir=toolchain_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(temp_name, path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise StateError(f"Failed to write {path}: {exc}") from exc
    return path


__all__ = [
    "BANNER",
    "TOOLCHAIN_FILENAME",
    "ToolchainRecord",
    "ToolchainRegistry",
    "read_state",
    "toolchain_file",
    "write_state",
]
