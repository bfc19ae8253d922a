# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the subprocess wrapper and environment overlays."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from toolboot.process_utils import EnvironmentOverlay, SubprocessExecutionError, run_command


def test_overlay_strips_then_sets() -> None:
    overlay = EnvironmentOverlay(variables={"GOPATH": "/toolchain/gopath"}, removed=frozenset({"GOPATH", "GOFLAGS"}))

    assert overlay.apply({"GOPATH": "/home/me/go", "GOFLAGS": "-mod=vendor", "PATH": "/bin"}) == {
        "GOPATH": "/toolchain/gopath",
        "PATH": "/bin",
    }
    assert EnvironmentOverlay().empty


def test_run_command_resolves_relative_scripts_against_cwd(monkeypatch, tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def fake_run(args, **kwargs):  # noqa: ANN001
        seen.update(args=args, **kwargs)
        return subprocess.CompletedProcess(args, 0, stdout=None)

    monkeypatch.setattr("toolboot.process_utils.subprocess.run", fake_run)

    run_command(["./configure", "--prefix=/opt"], cwd=tmp_path)

    assert seen["args"] == [str(tmp_path / "configure"), "--prefix=/opt"]
    assert seen["cwd"] == str(tmp_path)
    assert seen["env"] is None
    assert seen["stdout"] is None


def test_run_command_applies_overlay_and_captures_stdout(monkeypatch, tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def fake_run(args, **kwargs):  # noqa: ANN001
        seen.update(kwargs)
        return subprocess.CompletedProcess(args, 0, stdout=b"request")

    monkeypatch.setattr("toolboot.process_utils.subprocess.run", fake_run)
    monkeypatch.setenv("GOPATH", "/home/me/go")

    completed = run_command(
        ["/usr/bin/go", "build"],
        overlay=EnvironmentOverlay(variables={"GOPATH": "/tc/gopath"}, removed=frozenset({"GOPATH"})),
        capture_stdout=True,
        stdin_data=b"in",
    )

    assert completed.stdout == b"request"
    assert seen["env"]["GOPATH"] == "/tc/gopath"
    assert seen["stdout"] is subprocess.PIPE
    assert seen["input"] == b"in"


def test_run_command_raises_on_non_zero_exit(monkeypatch) -> None:
    monkeypatch.setattr(
        "toolboot.process_utils.subprocess.run",
        lambda args, **kwargs: subprocess.CompletedProcess(args, 2),
    )

    with pytest.raises(SubprocessExecutionError) as excinfo:
        run_command(["/usr/bin/make", "check"])

    assert excinfo.value.returncode == 2
    assert excinfo.value.command == ("/usr/bin/make", "check")


def test_run_command_requires_executables_on_path(monkeypatch) -> None:
    monkeypatch.setattr("toolboot.process_utils.shutil.which", lambda name: None)

    with pytest.raises(FileNotFoundError, match="not found on PATH"):
        run_command(["make"])
