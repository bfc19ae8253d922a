# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution for build steps."""

from __future__ import annotations

import logging
import os
import shutil

# Bandit: subprocess usage is intentional; commands come from the tool
# catalogue and are executed without ``shell=True``.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import SubprocessExecutionError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnvironmentOverlay:
    """Changes applied on top of the inherited process environment.

    Attributes:
        variables: Variables set (or replaced) for the child process.
        removed: Variables stripped from the inherited environment before
            ``variables`` is applied.
    """

    variables: Mapping[str, str] = field(default_factory=dict)
    removed: frozenset[str] = frozenset()

    def apply(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return a new environment mapping with the overlay applied.

        Args:
            base: Environment to start from; defaults to ``os.environ``.

        Returns:
            dict[str, str]: Environment for the child process.
        """

        env = dict(os.environ if base is None else base)
        for name in self.removed:
            env.pop(name, None)
        env.update(self.variables)
        return env

    @property
    def empty(self) -> bool:
        return not self.variables and not self.removed


class CommandRunner(Protocol):
    """Callable signature shared by :func:`run_command` and test doubles."""

    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        overlay: EnvironmentOverlay | None = None,
        capture_stdout: bool = False,
        stdin_data: bytes | None = None,
    ) -> subprocess.CompletedProcess[bytes]: ...


def _normalize_args(args: Sequence[str], cwd: Path | None) -> list[str]:
    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]
    if len(head_path.parts) > 1 or head.startswith("."):
        base = cwd if cwd is not None else Path.cwd()
        return [str(base / head_path), *rest]

    resolved = shutil.which(head)
    if resolved is None:
        msg = f"Executable '{head}' was not found on PATH"
        raise FileNotFoundError(msg)
    return [resolved, *rest]


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    overlay: EnvironmentOverlay | None = None,
    capture_stdout: bool = False,
    stdin_data: bytes | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Execute *args* with inherited stdio and raise on a non-zero exit.

    Output is streamed live to the parent's stdout/stderr unless
    ``capture_stdout`` is set, in which case stdout is collected as bytes and
    stderr keeps streaming.

    Args:
        args: Command and arguments. Relative paths such as ``./configure``
            are resolved against ``cwd``; bare names are looked up on ``PATH``.
        cwd: Working directory for the child process.
        overlay: Environment changes applied to the inherited environment.
        capture_stdout: Collect stdout instead of streaming it.
        stdin_data: Bytes written to the child's stdin.

    Returns:
        subprocess.CompletedProcess[bytes]: The completed process.

    Raises:
        SubprocessExecutionError: The command exited with a non-zero status.
    """

    normalized = _normalize_args(args, cwd)
    env = overlay.apply() if overlay is not None and not overlay.empty else None
    LOGGER.debug("running %s (cwd=%s)", " ".join(normalized), cwd)
    # Bandit: the argument list is passed directly without shell expansion.
    completed = subprocess.run(  # nosec B603
        normalized,
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        check=False,
        input=stdin_data,
        stdout=subprocess.PIPE if capture_stdout else None,
    )
    if completed.returncode != 0:
        raise SubprocessExecutionError(normalized, completed.returncode)
    return completed


__all__ = ["CommandRunner", "EnvironmentOverlay", "SubprocessExecutionError", "run_command"]
