# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for user configuration, the download manifest and host detection."""

from __future__ import annotations

from pathlib import Path

import pytest

from toolboot.config import Directories, load_user_config
from toolboot.errors import ConfigurationError
from toolboot.manifest import load_manifest
from toolboot.platform import HostPlatform
from toolboot.templates import expand_template


def test_missing_config_yields_defaults(tmp_path: Path) -> None:
    config = load_user_config(tmp_path / "config.toml")

    assert config.build_tool.download_user_agent == "toolboot"
    assert config.build_tool.tool("bison").version == ""
    with pytest.raises(ConfigurationError, match="does not exist"):
        load_user_config(tmp_path / "config.toml", required=True)


def test_config_reads_aliased_tables(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        """
[build-tool]
DownloadUserAgent = "example-builder/1.0"
DownloadsFile = "pins/downloads.toml"
ToolChainDirTemplate = "{home}/toolchain"

[build-tool.bison]
Version = "3.8.2"

[build-tool.go-capnp]
Executable = "/opt/capnpc-go"

[build-tool.bpf_asm]
Executable = "/usr/sbin/bpf_asm"

[build-tool.go]
GoPathTemplate = "{toolchain_dir}/gopath-{go_version}"

[build-tool.generate.capnp]
CapnpDirs = ["schemas", "api"]
StdDir = "third_party/go-capnp/std"
""",
        encoding="utf-8",
    )

    build_tool = load_user_config(path).build_tool

    assert build_tool.download_user_agent == "example-builder/1.0"
    assert build_tool.downloads_file == "pins/downloads.toml"
    assert build_tool.tool("bison").version == "3.8.2"
    assert build_tool.tool("go-capnp").executable == "/opt/capnpc-go"
    assert build_tool.executable_override("bpf_asm") == "/usr/sbin/bpf_asm"
    assert build_tool.executable_override("flex") == ""
    assert build_tool.tool("unknown-tool").version == ""
    assert build_tool.go.gopath_template == "{toolchain_dir}/gopath-{go_version}"
    assert build_tool.generate.capnp.capnp_dirs == ["schemas", "api"]
    assert Directories.from_config(build_tool, home=tmp_path).toolchain_dir == tmp_path / "toolchain"


def test_bpf_asm_table_accepts_gopath(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        """
[build-tool.bpf_asm]
Executable = "/usr/sbin/bpf_asm"
GoPath = "/home/builder/go"
""",
        encoding="utf-8",
    )

    build_tool = load_user_config(path).build_tool

    assert build_tool.executable_override("bpf_asm") == "/usr/sbin/bpf_asm"
    assert build_tool.bpf_asm.gopath == "/home/builder/go"


@pytest.mark.parametrize(
    "content",
    [
        "[build-tool\n",
        "[build-tool.bison]\nVersoin = '3.8.2'\n",
    ],
)
def test_invalid_config_raises_configuration_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.toml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_user_config(path)


def test_manifest_reads_files_keyed_by_filename(tmp_path: Path) -> None:
    path = tmp_path / "downloads.toml"
    path.write_text(
        f"""
[bison]
DownloadUrlTemplate = "https://ftp.gnu.org/gnu/bison/{{filename}}"
FilenameTemplate = "bison-{{version}}.tar.xz"
PreferredVersion = "3.8.2"

[bison.Files."bison-3.8.2.tar.xz"]
SHA-256 = "{'ab' * 32}"
Size = 2817324
""",
        encoding="utf-8",
    )

    manifest = load_manifest(path)
    info = manifest.info_for("bison")

    assert info.preferred_version == "3.8.2"
    assert info.files["bison-3.8.2.tar.xz"].size == 2817324
    assert info.files["bison-3.8.2.tar.xz"].sha256 == "ab" * 32
    assert manifest.info_for("flex").files == {}


def test_manifest_errors_are_configuration_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="does not exist"):
        load_manifest(tmp_path / "downloads.toml")

    path = tmp_path / "bad.toml"
    path.write_text('[bison.Files."bison-3.8.2.tar.xz"]\nSHA-256 = "xyz"\nSize = 1\n', encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid download manifest"):
        load_manifest(path)


def test_expand_template_reports_unknown_placeholders() -> None:
    assert expand_template("tinygo{version}.{os}-{arch}", context="t", version="1", os="linux", arch="amd64") == (
        "tinygo1.linux-amd64"
    )
    with pytest.raises(ConfigurationError, match=r"unknown placeholder \{arch\}"):
        expand_template("{version}-{arch}", context="t", version="1")


@pytest.mark.parametrize(
    ("system", "machine", "expected"),
    [
        ("Linux", "x86_64", HostPlatform("linux", "amd64")),
        ("Linux", "aarch64", HostPlatform("linux", "arm64")),
        ("Darwin", "arm64", HostPlatform("darwin", "arm64")),
    ],
)
def test_host_platform_uses_go_names(monkeypatch, system: str, machine: str, expected: HostPlatform) -> None:
    monkeypatch.setattr("toolboot.platform._platform.system", lambda: system)
    monkeypatch.setattr("toolboot.platform._platform.machine", lambda: machine)

    assert HostPlatform.detect() == expected
