# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User configuration loaded from ``config.toml``."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError
from .templates import expand_template

DEFAULT_CONFIG_FILE: Final[str] = "config.toml"
DEFAULT_DOWNLOADS_FILE: Final[str] = "downloads.toml"

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class ToolUserConfig(BaseModel):
    """Per-tool overrides; an empty field defers to the next layer."""

    model_config = _MODEL_CONFIG

    download_url: str = Field(default="", alias="DownloadUrl")
    executable: str = Field(default="", alias="Executable")
    version: str = Field(default="", alias="Version")


class ExecutableUserConfig(BaseModel):
    """Override for a tool whose artifact comes from another section."""

    model_config = _MODEL_CONFIG

    executable: str = Field(default="", alias="Executable")
    # Present in existing `[build-tool.bpf_asm]` tables; the kernel build never reads it.
    gopath: str = Field(default="", alias="GoPath")


class GoUserConfig(BaseModel):
    """Location of the Go toolchain and the GOPATH handed to Go builds."""

    model_config = _MODEL_CONFIG

    executable: str = Field(default="", alias="Executable")
    gopath_template: str = Field(default="", alias="GoPathTemplate")


class CapnpGenerateConfig(BaseModel):
    model_config = _MODEL_CONFIG

    capnp_dirs: list[str] = Field(default_factory=list, alias="CapnpDirs")
    std_dir: str = Field(default="", alias="StdDir")


class GenerateConfig(BaseModel):
    model_config = _MODEL_CONFIG

    capnp: CapnpGenerateConfig = Field(default_factory=CapnpGenerateConfig)


class BuildToolConfig(BaseModel):
    """The ``[build-tool]`` table."""

    model_config = _MODEL_CONFIG

    build_dir_template: str = Field(default="_build", alias="BuildDirTemplate")
    download_dir_template: str = Field(default="{home}/.cache/toolboot/downloads", alias="DownloadDirTemplate")
    download_user_agent: str = Field(default="toolboot", alias="DownloadUserAgent")
    downloads_file: str = Field(default="", alias="DownloadsFile")
    toolchain_dir_template: str = Field(default="{home}/.local/share/toolboot", alias="ToolChainDirTemplate")

    binaryen: ToolUserConfig = Field(default_factory=ToolUserConfig)
    bison: ToolUserConfig = Field(default_factory=ToolUserConfig)
    capnproto: ToolUserConfig = Field(default_factory=ToolUserConfig)
    flex: ToolUserConfig = Field(default_factory=ToolUserConfig)
    go_capnp: ToolUserConfig = Field(default_factory=ToolUserConfig, alias="go-capnp")
    linux: ToolUserConfig = Field(default_factory=ToolUserConfig)
    tinygo: ToolUserConfig = Field(default_factory=ToolUserConfig)
    bpf_asm: ExecutableUserConfig = Field(default_factory=ExecutableUserConfig)
    go: GoUserConfig = Field(default_factory=GoUserConfig)
    generate: GenerateConfig = Field(default_factory=GenerateConfig)

    def tool(self, key: str) -> ToolUserConfig:
        """Return the overrides stored under the TOML table *key*.

        Unknown keys yield an empty :class:`ToolUserConfig`.
        """

        for name, field in type(self).model_fields.items():
            if key in (name, field.alias):
                value = getattr(self, name)
                if isinstance(value, ToolUserConfig):
                    return value
        return ToolUserConfig()

    def executable_override(self, key: str) -> str:
        """Return the ``Executable`` configured under the TOML table *key*."""

        for name, field in type(self).model_fields.items():
            if key in (name, field.alias):
                return getattr(getattr(self, name), "executable", "")
        return ""


class UserConfig(BaseModel):
    """Top-level user configuration document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    build_tool: BuildToolConfig = Field(default_factory=BuildToolConfig, alias="build-tool")


def load_user_config(path: Path, *, required: bool = False) -> UserConfig:
    """Parse the user configuration at *path*.

    Args:
        path: Location of ``config.toml``.
        required: Raise when the file does not exist instead of returning
            the defaults.

    Returns:
        UserConfig: Validated configuration.

    Raises:
        ConfigurationError: The file is unreadable, invalid, or missing while
            ``required`` is set.
    """

    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as exc:
        if required:
            raise ConfigurationError(f"Configuration file {path} does not exist") from exc
        return UserConfig()
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Failed to read configuration file {path}: {exc}") from exc

    try:
        return UserConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc


def expand_directory(template: str, *, context: str, home: Path, **values: str) -> Path:
    """Expand a directory template and make the result absolute.

    Relative results are interpreted against the current working directory.
    """

    expanded = expand_template(template, context=context, home=str(home), **values)
    return Path(expanded).expanduser().absolute()


@dataclass(frozen=True, slots=True)
class Directories:
    """Absolute working directories derived from the ``[build-tool]`` templates."""

    build_dir: Path
    download_dir: Path
    toolchain_dir: Path

    @classmethod
    def from_config(cls, config: BuildToolConfig, *, home: Path | None = None) -> Directories:
        home_dir = home if home is not None else Path.home()
        return cls(
            build_dir=expand_directory(config.build_dir_template, context="BuildDirTemplate", home=home_dir),
            download_dir=expand_directory(
                config.download_dir_template, context="DownloadDirTemplate", home=home_dir
            ),
            toolchain_dir=expand_directory(
                config.toolchain_dir_template, context="ToolChainDirTemplate", home=home_dir
            ),
        )


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_DOWNLOADS_FILE",
    "BuildToolConfig",
    "CapnpGenerateConfig",
    "Directories",
    "ExecutableUserConfig",
    "GenerateConfig",
    "GoUserConfig",
    "ToolUserConfig",
    "UserConfig",
    "expand_directory",
    "load_user_config",
]
