# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Catalogue of bootstrappable tools and their build strategies."""

from __future__ import annotations

import os
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Final

from .archive import FilterMode, PrefixFilter, StripPrefixTransform, filter_pair
from .errors import ConfigurationError
from .platform import HostPlatform
from .process_utils import CommandRunner, EnvironmentOverlay
from .resolver import GoToolchain, ResolvedToolConfig

TemplateValues = Callable[[str, HostPlatform], dict[str, str]]


def version_values(version: str, host: HostPlatform) -> dict[str, str]:
    """Template values for artifacts named only by version."""

    return {"version": version}


def go_platform_values(version: str, host: HostPlatform) -> dict[str, str]:
    """Template values using Go's ``os``/``arch`` names (``linux``, ``amd64``)."""

    return {"version": version, "os": host.os, "arch": host.arch}


def binaryen_platform_values(version: str, host: HostPlatform) -> dict[str, str]:
    """Template values using Binaryen's release names (``x86_64``, ``aarch64``, ``macos``).

    Binaryen keeps ``arm64`` for macOS builds and uses ``aarch64`` elsewhere.
    """

    arch = host.arch
    if arch == "amd64":
        arch = "x86_64"
    elif arch == "arm64" and host.os != "darwin":
        arch = "aarch64"
    os_name = "macos" if host.os == "darwin" else host.os
    return {"version": version, "os": os_name, "arch": arch}


def kernel_values(version: str, host: HostPlatform) -> dict[str, str]:
    """Template values for kernel source tarballs, adding ``major_version``."""

    major, _, _ = version.partition(".")
    if not major.isdigit():
        raise ConfigurationError(f"Unable to extract the major version from Linux version {version!r}")
    return {"version": version, "major_version": major}


@dataclass(frozen=True, slots=True)
class ArchiveLayout:
    """Which part of an archive is unpacked and the prefix stripped from it."""

    roots: tuple[str, ...]
    strip: str
    mode: FilterMode = FilterMode.REJECT
    include_parents: bool = False

    @classmethod
    def single(cls, top: str) -> ArchiveLayout:
        """Layout for an archive holding exactly one top-level directory."""
        return cls(roots=(top,), strip=top)

    def pair(self, destination: Path) -> tuple[PrefixFilter, StripPrefixTransform]:
        return filter_pair(
            self.roots,
            destination,
            strip=self.strip,
            mode=self.mode,
            include_parents=self.include_parents,
        )


@dataclass(slots=True)
class BuildContext:
    """Inputs available to a build step."""

    resolved: ResolvedToolConfig
    install_path: Path
    executable: Path
    runner: CommandRunner
    messages: list[str]
    dependencies: Mapping[str, Path] = field(default_factory=dict)
    go: GoToolchain | None = None

    def run(self, args: Sequence[str], *, cwd: Path, overlay: EnvironmentOverlay | None = None) -> None:
        self.messages.append(f"Running {' '.join(args)} in {cwd}")
        self.runner(list(args), cwd=cwd, overlay=overlay)


class BuildStep(ABC):
    """Turns an unpacked source tree into the tool's executable."""

    requires_go: ClassVar[bool] = False

    @abstractmethod
    def run(self, context: BuildContext) -> None:
        """Build inside ``context.install_path``.

        Raises:
            SubprocessExecutionError: A build command failed.
            ConfigurationError: A required input is missing.
        """


class ConfigureMake(BuildStep):
    """``./configure`` followed by ``make`` with optional targets."""

    def __init__(self, *make_args: str) -> None:
        self.make_args = make_args

    def run(self, context: BuildContext) -> None:
        context.run(["./configure"], cwd=context.install_path)
        context.run(["make", *self.make_args], cwd=context.install_path)


class GoBuild(BuildStep):
    """``go build`` in a package directory with GOPATH pointed at the toolchain."""

    requires_go = True

    def __init__(self, package_dir: str) -> None:
        self.package_dir = package_dir

    def run(self, context: BuildContext) -> None:
        go = context.go
        if go is None or go.executable is None:
            raise ConfigurationError(
                f"{context.resolved.display_name} needs a Go toolchain; set [build-tool.go] Executable "
                "or record a go entry in toolchain.toml"
            )
        overlay = EnvironmentOverlay(variables={"GOPATH": str(go.gopath)}, removed=frozenset({"GOPATH"}))
        context.run([str(go.executable), "build"], cwd=context.install_path / self.package_dir, overlay=overlay)


class ExtractOnly(BuildStep):
    """Prebuilt binaries: nothing to build, only refresh the executable's mtime."""

    def run(self, context: BuildContext) -> None:
        if not context.executable.is_file():
            return
        atime = context.executable.stat().st_atime
        os.utime(context.executable, (atime, time.time()))
        context.messages.append(f"Refreshed the modification time of {context.executable}")


class KernelToolMake(BuildStep):
    """``make <target>`` in a kernel tools subdirectory, passing LEX/YACC overrides."""

    def __init__(self, subdir: str, target: str) -> None:
        self.subdir = subdir
        self.target = target

    def run(self, context: BuildContext) -> None:
        args = ["make"]
        for variable, key, bare in (("LEX", "flex", "flex"), ("YACC", "bison", "bison")):
            executable = context.dependencies.get(key)
            if executable is not None and str(executable) != bare:
                args.append(f"{variable}={executable}")
        args.append(self.target)
        context.run(args, cwd=context.install_path / self.subdir)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Static description of one bootstrappable tool.

    Attributes:
        key: Registry key in ``toolchain.toml``.
        display_name: Name used in messages.
        install_prefix: Install directory is ``<install_prefix>-<version>``.
        layout: Archive layout for a given version.
        build: Build strategy.
        executable: Executable path relative to the install directory.
        artifact_key: Manifest/config table providing version and download.
        config_key: Config table providing the ``Executable`` override.
        cli_name: Suffix of the ``bootstrap-*`` command.
        dependencies: Registry keys bootstrapped first.
        template_values: Placeholder values for URL/filename templates.
    """

    key: str
    display_name: str
    install_prefix: str
    layout: Callable[[str], ArchiveLayout]
    build: BuildStep
    executable: str
    artifact_key: str = ""
    config_key: str = ""
    cli_name: str = ""
    dependencies: tuple[str, ...] = ()
    template_values: TemplateValues = version_values

    def __post_init__(self) -> None:
        for name in ("artifact_key", "config_key", "cli_name"):
            if not getattr(self, name):
                object.__setattr__(self, name, self.key)


def _kernel_slice(version: str) -> ArchiveLayout:
    top = f"linux-{version}"
    return ArchiveLayout(
        roots=tuple(f"{top}/tools/{part}" for part in ("bpf", "build", "scripts")),
        strip=top,
        mode=FilterMode.SKIP,
        include_parents=True,
    )


BISON = ToolSpec(
    key="bison",
    display_name="Bison",
    install_prefix="bison",
    layout=lambda version: ArchiveLayout.single(f"bison-{version}"),
    build=ConfigureMake(),
    executable="tests/bison",
)
FLEX = ToolSpec(
    key="flex",
    display_name="Flex",
    install_prefix="flex",
    layout=lambda version: ArchiveLayout.single(f"flex-{version}"),
    build=ConfigureMake(),
    executable="src/flex",
)
CAPNPROTO = ToolSpec(
    key="capnproto",
    display_name="Cap'n Proto",
    install_prefix="capnproto",
    layout=lambda version: ArchiveLayout.single(f"capnproto-c++-{version}"),
    build=ConfigureMake("check"),
    executable="capnp",
)
GO_CAPNP = ToolSpec(
    key="go-capnp",
    display_name="go-capnp",
    install_prefix="go-capnp",
    layout=lambda version: ArchiveLayout.single(f"go-capnp-{version}"),
    build=GoBuild("capnpc-go"),
    executable="capnpc-go/capnpc-go",
)
TINYGO = ToolSpec(
    key="tinygo",
    display_name="TinyGo",
    install_prefix="tinygo",
    layout=lambda version: ArchiveLayout.single("tinygo"),
    build=ExtractOnly(),
    executable="bin/tinygo",
    template_values=go_platform_values,
)
BINARYEN = ToolSpec(
    key="binaryen",
    display_name="Binaryen",
    install_prefix="binaryen",
    layout=lambda version: ArchiveLayout.single(f"binaryen-version_{version}"),
    build=ExtractOnly(),
    executable="bin/wasm-opt",
    template_values=binaryen_platform_values,
)
BPF_ASM = ToolSpec(
    key="bpf-asm",
    display_name="bpf_asm",
    install_prefix="bpf_asm",
    layout=_kernel_slice,
    build=KernelToolMake("tools/bpf", "bpf_asm"),
    executable="tools/bpf/bpf_asm",
    artifact_key="linux",
    config_key="bpf_asm",
    cli_name="bpf_asm",
    dependencies=("bison", "flex"),
    template_values=kernel_values,
)

TOOLS: Final[dict[str, ToolSpec]] = {
    spec.key: spec for spec in (BISON, FLEX, CAPNPROTO, GO_CAPNP, TINYGO, BINARYEN, BPF_ASM)
}


__all__ = [
    "BINARYEN",
    "BISON",
    "BPF_ASM",
    "CAPNPROTO",
    "FLEX",
    "GO_CAPNP",
    "TINYGO",
    "TOOLS",
    "ArchiveLayout",
    "BuildContext",
    "BuildStep",
    "ConfigureMake",
    "ExtractOnly",
    "GoBuild",
    "KernelToolMake",
    "ToolSpec",
    "binaryen_platform_values",
    "go_platform_values",
    "kernel_values",
    "version_values",
]
