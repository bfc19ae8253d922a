# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by every toolboot component."""

from __future__ import annotations

from collections.abc import Sequence


class ToolbootError(RuntimeError):
    """Base class for failures raised by toolboot."""


class ConfigurationError(ToolbootError):
    """Raised when user configuration or the download manifest is unusable."""


class StateError(ToolbootError):
    """Raised when the persisted toolchain registry cannot be read or written."""


class IntegrityError(ToolbootError):
    """Raised when a downloaded artifact does not match its recorded size or digest."""


class DownloadError(ToolbootError):
    """Raised when an artifact cannot be fetched into the download cache."""


class ArchiveShapeError(ToolbootError):
    """Raised when an archive contains entries outside the expected layout."""


class InstallError(ToolbootError):
    """Raised when a build finishes without producing the expected executable."""


class SubprocessExecutionError(ToolbootError):
    """Raised when a subprocess exits with a non-zero status while ``check`` is true."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str | None = None) -> None:
        detail = f" stderr: {stderr}" if stderr else ""
        super().__init__(f"Command '{' '.join(command)}' exited with status {returncode}.{detail}")
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr


class BootstrapError(ToolbootError):
    """Raised when bootstrapping a single tool fails.

    The progress messages collected before the failure travel with the
    exception so callers can replay them, and the underlying error is kept as
    ``__cause__``.
    """

    def __init__(
        self,
        display_name: str,
        messages: Sequence[str],
        *,
        reason: str | None = None,
        state: str | None = None,
    ) -> None:
        self.display_name = display_name
        self.messages = list(messages)
        self.state = state
        self.reason = reason
        summary = f"Failed to bootstrap {display_name}"
        if reason:
            summary = f"{summary}: {reason}"
        super().__init__(summary)


class DependencyError(ToolbootError):
    """Raised when a tool cannot run because a tool it depends on failed."""


__all__ = [
    "ArchiveShapeError",
    "BootstrapError",
    "ConfigurationError",
    "DependencyError",
    "DownloadError",
    "InstallError",
    "IntegrityError",
    "StateError",
    "SubprocessExecutionError",
    "ToolbootError",
]
