# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures: tarball builders, fake runners and bootstrap sessions."""

from __future__ import annotations

import hashlib
import io
import shutil
import tarfile
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from subprocess import CompletedProcess

import pytest

from toolboot.bootstrap import BootstrapSession
from toolboot.config import Directories, UserConfig
from toolboot.manifest import DownloadManifest
from toolboot.platform import HostPlatform
from toolboot.process_utils import EnvironmentOverlay
from toolboot.resolver import ConfigurationResolver
from toolboot.state import ToolchainRegistry

LINUX_AMD64 = HostPlatform(os="linux", arch="amd64")


@dataclass(frozen=True)
class TarMember:
    """One entry written by :func:`build_tarball`; ``data=None`` means a directory."""

    name: str
    data: bytes | None = None
    mode: int | None = None
    mtime: int = 1_600_000_000
    symlink_to: str | None = None
    hardlink_to: str | None = None
    fifo: bool = False


def build_tarball(path: Path, members: Iterable[TarMember], *, compression: str = "gz") -> Path:
    mode = f"w:{compression}" if compression else "w"
    with tarfile.open(path, mode) as tar:
        for member in members:
            info = tarfile.TarInfo(member.name)
            info.mtime = member.mtime
            if member.symlink_to is not None:
                info.type = tarfile.SYMTYPE
                info.linkname = member.symlink_to
                info.mode = 0o777
                tar.addfile(info)
            elif member.hardlink_to is not None:
                info.type = tarfile.LNKTYPE
                info.linkname = member.hardlink_to
                info.mode = 0o644
                tar.addfile(info)
            elif member.fifo:
                info.type = tarfile.FIFOTYPE
                info.mode = 0o644
                tar.addfile(info)
            elif member.data is None:
                info.type = tarfile.DIRTYPE
                info.mode = member.mode if member.mode is not None else 0o755
                tar.addfile(info)
            else:
                info.size = len(member.data)
                info.mode = member.mode if member.mode is not None else 0o644
                tar.addfile(info, io.BytesIO(member.data))
    return path


def file_entry(path: Path) -> dict[str, object]:
    """Manifest ``Files`` entry describing *path*."""

    return {"SHA-256": hashlib.sha256(path.read_bytes()).hexdigest(), "Size": path.stat().st_size}


@dataclass
class RecordedCall:
    args: list[str]
    cwd: Path | None
    overlay: EnvironmentOverlay | None
    capture_stdout: bool
    stdin_data: bytes | None


@dataclass
class FakeRunner:
    """Stand-in for :func:`toolboot.process_utils.run_command`.

    ``on_call`` may create build outputs, raise, or return bytes used as the
    captured stdout.
    """

    on_call: Callable[[RecordedCall], bytes | None] | None = None
    calls: list[RecordedCall] = field(default_factory=list)

    def __call__(
        self,
        args,
        *,
        cwd: Path | None = None,
        overlay: EnvironmentOverlay | None = None,
        capture_stdout: bool = False,
        stdin_data: bytes | None = None,
    ) -> CompletedProcess[bytes]:
        call = RecordedCall(list(args), cwd, overlay, capture_stdout, stdin_data)
        self.calls.append(call)
        stdout = self.on_call(call) if self.on_call is not None else None
        return CompletedProcess(list(args), 0, stdout=stdout or b"", stderr=None)


def no_network(url, cache_dir, dest_path, **kwargs):  # noqa: ANN001
    raise AssertionError(f"unexpected download of {url}")


@dataclass
class CopyingDownloader:
    """Serves artifacts from local files keyed by URL."""

    sources: Mapping[str, Path]
    requests: list[str] = field(default_factory=list)

    def __call__(self, url, cache_dir, dest_path, **kwargs):  # noqa: ANN001
        self.requests.append(url)
        shutil.copyfile(self.sources[url], dest_path)
        return dest_path


@dataclass
class Workspace:
    """Isolated download cache and toolchain root below ``tmp_path``."""

    root: Path

    @property
    def download_dir(self) -> Path:
        return self.root / "downloads"

    @property
    def toolchain_dir(self) -> Path:
        return self.root / "toolchain"

    @property
    def artifacts(self) -> Path:
        path = self.root / "artifacts"
        path.mkdir(exist_ok=True)
        return path

    def user_config(self, **tables: object) -> UserConfig:
        build_tool: dict[str, object] = {
            "BuildDirTemplate": str(self.root / "build"),
            "DownloadDirTemplate": str(self.download_dir),
            "ToolChainDirTemplate": str(self.toolchain_dir),
        }
        build_tool.update(tables)
        return UserConfig.model_validate({"build-tool": build_tool})

    def session(
        self,
        manifest: Mapping[str, object],
        *,
        config: UserConfig | None = None,
        registry: ToolchainRegistry | None = None,
        runner: FakeRunner | None = None,
        downloader=no_network,  # noqa: ANN001
        environ: Mapping[str, str] | None = None,
        host: HostPlatform = LINUX_AMD64,
    ) -> BootstrapSession:
        user_config = config if config is not None else self.user_config()
        directories = Directories.from_config(user_config.build_tool, home=self.root)
        resolver = ConfigurationResolver(
            user_config=user_config,
            manifest=DownloadManifest.model_validate({"tools": dict(manifest)}),
            directories=directories,
            host=host,
            environ=environ if environ is not None else {},
            home=self.root,
        )
        return BootstrapSession(
            resolver=resolver,
            directories=directories,
            registry=registry if registry is not None else ToolchainRegistry(),
            runner=runner if runner is not None else FakeRunner(),
            downloader=downloader,
        )


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path)


@pytest.fixture
def tarball() -> Callable[..., Path]:
    return build_tarball


@pytest.fixture
def member() -> type[TarMember]:
    return TarMember


@pytest.fixture
def manifest_file_entry() -> Callable[[Path], dict[str, object]]:
    return file_entry


@pytest.fixture
def fake_runner() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def copying_downloader() -> type[CopyingDownloader]:
    return CopyingDownloader
