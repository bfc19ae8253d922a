# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-tool bootstrap: decide, download, verify, extract, build and record."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .archive import extract_archive
from .checksum import verify_sha256, verify_size
from .config import Directories
from .download import DownloadProgress, download_to_cache, ensure_download_dir
from .errors import BootstrapError, ConfigurationError, DownloadError, InstallError, ToolbootError
from .process_utils import CommandRunner, run_command
from .resolver import ConfigurationResolver, GoToolchain, ResolvedToolConfig
from .state import ToolchainRegistry
from .tools import BuildContext, ToolSpec

LOGGER = logging.getLogger(__name__)

Downloader = Callable[..., Path]
Extractor = Callable[..., object]


class BootstrapState(str, Enum):
    """Where a tool's bootstrap stands."""

    USER_PINNED_EXTERNAL = "user-pinned-external"
    INSTALLED_MATCHING_VERSION = "installed-matching-version"
    INSTALLED_MISMATCHED_VERSION = "installed-mismatched-version"
    NOT_INSTALLED = "not-installed"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    EXTRACTING = "extracting"
    BUILDING = "building"
    RECORDING = "recording"
    INSTALLED = "installed"
    FAILED = "failed"

    @property
    def terminal_skip(self) -> bool:
        return self in (BootstrapState.USER_PINNED_EXTERNAL, BootstrapState.INSTALLED_MATCHING_VERSION)


@dataclass(slots=True)
class ToolOutcome:
    """Result of bootstrapping one tool."""

    key: str
    display_name: str
    state: BootstrapState
    messages: list[str] = field(default_factory=list)
    executable: Path | None = None
    version: str | None = None
    error: ToolbootError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        """``True`` when this run installed the tool and touched the registry."""
        return self.state is BootstrapState.INSTALLED


@dataclass(slots=True)
class BootstrapSession:
    """Shared inputs for every tool bootstrapped in one run."""

    resolver: ConfigurationResolver
    directories: Directories
    registry: ToolchainRegistry
    user_agent: str = "toolboot"
    runner: CommandRunner = run_command
    downloader: Downloader = download_to_cache
    extractor: Extractor = extract_archive
    progress: DownloadProgress | None = None


@dataclass(frozen=True, slots=True)
class BuildInputs:
    """Outputs of other tools a build may need."""

    dependencies: Mapping[str, Path] = field(default_factory=dict)
    go: GoToolchain | None = None


class ToolBootstrapper:
    """Drive one tool through the bootstrap states.

    Every step appends a human-readable message to :attr:`messages`; on failure
    the messages travel with the raised :class:`BootstrapError`.
    """

    def __init__(self, spec: ToolSpec, session: BootstrapSession, inputs: BuildInputs | None = None) -> None:
        self.spec = spec
        self.session = session
        self.inputs = inputs if inputs is not None else BuildInputs()
        self.messages: list[str] = []
        self.state = BootstrapState.NOT_INSTALLED

    def run(self) -> ToolOutcome:
        """Bootstrap the tool.

        Returns:
            ToolOutcome: Final state, messages and executable.

        Raises:
            BootstrapError: Any step failed; ``__cause__`` holds the error.
        """

        try:
            return self._run()
        except (ToolbootError, OSError) as exc:
            raise BootstrapError(
                self.spec.display_name, self.messages, reason=str(exc), state=self.state.value
            ) from exc

    def survey(self) -> BootstrapState:
        """Resolve the tool and return the state a run would start from.

        Nothing is downloaded, extracted or recorded.

        Raises:
            ConfigurationError: The tool's configuration cannot be resolved.
        """

        resolved = self.session.resolver.resolve(self.spec, self.session.registry)
        return self._initial_state(resolved)

    def _run(self) -> ToolOutcome:
        try:
            resolved = self.session.resolver.resolve(self.spec, self.session.registry)
        except ConfigurationError:
            self.messages.append(f"Failed to get the {self.spec.display_name} configuration")
            raise

        self.state = self._initial_state(resolved)
        if self.state.terminal_skip:
            return self._outcome(resolved, resolved.executable)

        archive = self._download(resolved)
        self._verify(resolved, archive)
        self._extract(resolved, archive)
        executable = resolved.install_path / self.spec.executable
        self._build(resolved, executable)
        self._record(resolved, executable)
        self.state = BootstrapState.INSTALLED
        return self._outcome(resolved, executable)

    def _outcome(self, resolved: ResolvedToolConfig, executable: Path | None) -> ToolOutcome:
        return ToolOutcome(
            key=self.spec.key,
            display_name=self.spec.display_name,
            state=self.state,
            messages=list(self.messages),
            executable=executable,
            version=resolved.version,
        )

    def _initial_state(self, resolved: ResolvedToolConfig) -> BootstrapState:
        name = self.spec.display_name
        pinned = resolved.user_executable
        if pinned is not None:
            if not pinned.is_file():
                raise ConfigurationError(f"User-specified {name} executable {pinned} does not exist")
            self.messages.append(
                f"Skipping download and installation of {name} because {pinned} (from the configuration) exists"
            )
            return BootstrapState.USER_PINNED_EXTERNAL

        recorded = resolved.recorded_executable
        if recorded is None or resolved.recorded is None:
            return BootstrapState.NOT_INSTALLED
        if not recorded.is_file():
            self.messages.append(f"Recorded {name} executable {recorded} is missing; reinstalling")
            return BootstrapState.NOT_INSTALLED
        if resolved.recorded.version != resolved.version:
            self.messages.append(
                f"The toolchain {name} executable {recorded} is version {resolved.recorded.version}, "
                f"not {resolved.version}; continuing"
            )
            return BootstrapState.INSTALLED_MISMATCHED_VERSION
        self.messages.append(
            f"Skipping download and installation of {name} because {recorded} (from the toolchain) exists"
        )
        return BootstrapState.INSTALLED_MATCHING_VERSION

    def _download(self, resolved: ResolvedToolConfig) -> Path:
        self.state = BootstrapState.DOWNLOADING
        download_dir = ensure_download_dir(self.session.directories.download_dir)
        target = download_dir / resolved.filename
        if target.is_file():
            self.messages.append(f"Skipping {resolved.display_name} download because {target} exists")
            return target
        if target.exists():
            raise DownloadError(f"{target} exists but is not a regular file")
        self.session.downloader(
            resolved.download_url,
            download_dir,
            target,
            user_agent=self.session.user_agent,
            progress=self.session.progress,
        )
        self.messages.append(f"Downloaded {resolved.download_url} to {target}")
        return target

    def _verify(self, resolved: ResolvedToolConfig, archive: Path) -> None:
        self.state = BootstrapState.VERIFYING
        verify_size(resolved.expected_size, archive)
        verify_sha256(resolved.expected_sha256, archive)
        self.messages.append(f"{archive} has the correct size and SHA-256")

    def _extract(self, resolved: ResolvedToolConfig, archive: Path) -> None:
        self.state = BootstrapState.EXTRACTING
        toolchain_dir = resolved.toolchain_dir
        toolchain_dir.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".staging-{resolved.install_dir}-", dir=toolchain_dir))
        try:
            staging.chmod(0o755)
            entry_filter, transform = self.spec.layout(resolved.version).pair(staging)
            self.session.extractor(archive, entry_filter, transform)
            if resolved.install_path.exists():
                self.messages.append(f"Replacing stale {resolved.install_path}")
                shutil.rmtree(resolved.install_path)
            staging.rename(resolved.install_path)
        except BaseException:
            self.messages.append(f"Failed to extract {archive}")
            shutil.rmtree(staging, ignore_errors=True)
            raise
        self.messages.append(f"Extracted {archive} to {resolved.install_path}")

    def _build(self, resolved: ResolvedToolConfig, executable: Path) -> None:
        self.state = BootstrapState.BUILDING
        context = BuildContext(
            resolved=resolved,
            install_path=resolved.install_path,
            executable=executable,
            runner=self.session.runner,
            messages=self.messages,
            dependencies=self.inputs.dependencies,
            go=self.inputs.go,
        )
        self.spec.build.run(context)

    def _record(self, resolved: ResolvedToolConfig, executable: Path) -> None:
        self.state = BootstrapState.RECORDING
        if not executable.is_file():
            raise InstallError(f"Building {resolved.display_name} did not produce {executable}")
        relative = f"{resolved.install_dir}/{self.spec.executable}"
        self.session.registry.record(self.spec.key, executable=relative, version=resolved.version)
        self.messages.append(f"Recorded {resolved.display_name} {resolved.version} as {relative}")
        LOGGER.debug("recorded %s=%s (%s)", self.spec.key, relative, resolved.version)


def bootstrap_tool(spec: ToolSpec, session: BootstrapSession, inputs: BuildInputs | None = None) -> ToolOutcome:
    """Bootstrap *spec* using *session*; see :class:`ToolBootstrapper`."""

    return ToolBootstrapper(spec, session, inputs).run()


__all__ = [
    "BootstrapSession",
    "BootstrapState",
    "BuildInputs",
    "ToolBootstrapper",
    "ToolOutcome",
    "bootstrap_tool",
]
