# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Merge user configuration, toolchain state and the download manifest."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .config import BuildToolConfig, Directories, UserConfig, expand_directory
from .errors import ConfigurationError
from .manifest import DownloadManifest
from .platform import HostPlatform
from .state import ToolchainRecord, ToolchainRegistry
from .templates import expand_template

if TYPE_CHECKING:
    from .tools import ToolSpec

GO_REGISTRY_KEY = "go"


@dataclass(frozen=True, slots=True)
class ResolvedToolConfig:
    """Effective settings for one tool in one run.

    Attributes:
        key: Registry key of the tool.
        display_name: Human-readable tool name.
        version: Effective version (user configuration, else manifest).
        download_url: Expanded artifact URL.
        filename: Expanded artifact filename.
        expected_size: Artifact size from the manifest.
        expected_sha256: Artifact digest from the manifest.
        install_dir: Install directory relative to the toolchain root.
        toolchain_dir: Absolute toolchain root.
        user_executable: Executable pinned in the user configuration.
        recorded: Registry entry for the tool, if any.
    """

    key: str
    display_name: str
    version: str
    download_url: str
    filename: str
    expected_size: int
    expected_sha256: str
    install_dir: str
    toolchain_dir: Path
    user_executable: Path | None = None
    recorded: ToolchainRecord | None = None

    @property
    def install_path(self) -> Path:
        return self.toolchain_dir / self.install_dir

    @property
    def recorded_executable(self) -> Path | None:
        return self.recorded.resolve(self.toolchain_dir) if self.recorded is not None else None

    @property
    def executable(self) -> Path | None:
        """User override, else the recorded executable when its version matches, else ``None``."""
        if self.user_executable is not None:
            return self.user_executable
        if self.recorded is not None and self.recorded.version == self.version:
            return self.recorded_executable
        return None


@dataclass(frozen=True, slots=True)
class GoToolchain:
    """Go compiler and GOPATH used by Go-based builds."""

    executable: Path | None
    gopath: Path


class ConfigurationResolver:
    """Resolve tool settings using user config, then state, then the manifest."""

    def __init__(
        self,
        *,
        user_config: UserConfig,
        manifest: DownloadManifest,
        directories: Directories,
        host: HostPlatform | None = None,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
    ) -> None:
        self.user_config = user_config
        self.manifest = manifest
        self.directories = directories
        self.host = host if host is not None else HostPlatform.detect()
        self._environ = environ if environ is not None else os.environ
        self._home = home if home is not None else Path.home()

    @property
    def build_tool(self) -> BuildToolConfig:
        return self.user_config.build_tool

    def resolve(self, spec: ToolSpec, registry: ToolchainRegistry) -> ResolvedToolConfig:
        """Return the effective configuration of *spec*.

        Args:
            spec: Catalogue entry of the tool.
            registry: Current toolchain registry.

        Returns:
            ResolvedToolConfig: Merged configuration.

        Raises:
            ConfigurationError: No version is configured, a template cannot be
                expanded, or the manifest lacks an entry for the artifact.
        """

        overrides = self.build_tool.tool(spec.artifact_key)
        info = self.manifest.info_for(spec.artifact_key)

        version = overrides.version or info.preferred_version
        if not version:
            raise ConfigurationError(f"No {spec.display_name} version configured")
        if not info.filename_template:
            raise ConfigurationError(f"No {spec.display_name} filename template in the download manifest")

        values = spec.template_values(version, self.host)
        filename = expand_template(
            info.filename_template, context=f"{spec.display_name} filename template", **values
        )
        url_template = overrides.download_url or info.download_url_template
        if not url_template:
            raise ConfigurationError(f"No {spec.display_name} download URL configured")
        url = expand_template(url_template, context=f"{spec.display_name} download URL", filename=filename, **values)

        entry = info.files.get(filename)
        if entry is None:
            raise ConfigurationError(
                f"File size and SHA-256 for {spec.display_name} file {filename} not found in the download manifest"
            )

        user_executable = self.build_tool.executable_override(spec.config_key)
        return ResolvedToolConfig(
            key=spec.key,
            display_name=spec.display_name,
            version=version,
            download_url=url,
            filename=filename,
            expected_size=entry.size,
            expected_sha256=entry.sha256,
            install_dir=f"{spec.install_prefix}-{version}",
            toolchain_dir=self.directories.toolchain_dir,
            user_executable=Path(user_executable).expanduser() if user_executable else None,
            recorded=registry.get(spec.key),
        )

    def resolve_go(self, registry: ToolchainRegistry) -> GoToolchain:
        """Return the Go compiler and GOPATH.

        The executable comes from ``[build-tool.go].Executable``, else the
        registry's ``go`` entry. GOPATH comes from the ambient ``GOPATH``, else
        ``GoPathTemplate``, else ``<toolchain>/gopath``.

        Raises:
            ConfigurationError: Both an ambient ``GOPATH`` and a
                ``GoPathTemplate`` are set.
        """

        go_config = self.build_tool.go
        toolchain_dir = self.directories.toolchain_dir
        recorded = registry.get(GO_REGISTRY_KEY)

        if go_config.executable:
            executable: Path | None = Path(go_config.executable).expanduser()
        elif recorded is not None:
            executable = recorded.resolve(toolchain_dir)
        else:
            executable = None

        ambient = self._environ.get("GOPATH", "")
        if ambient and go_config.gopath_template:
            raise ConfigurationError(
                "GOPATH is set in the environment and GoPathTemplate is set in the configuration; choose one"
            )
        if ambient:
            gopath = Path(ambient)
        elif go_config.gopath_template:
            gopath = expand_directory(
                go_config.gopath_template,
                context="GoPathTemplate",
                home=self._home,
                toolchain_dir=str(toolchain_dir),
                go_version=recorded.version if recorded is not None else "",
            )
        else:
            gopath = toolchain_dir / "gopath"
        return GoToolchain(executable=executable, gopath=gopath)


__all__ = ["GO_REGISTRY_KEY", "ConfigurationResolver", "GoToolchain", "ResolvedToolConfig"]
