# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``status`` command: compare the registry against the configured versions."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich import box
from rich.table import Table

from ..config import DEFAULT_CONFIG_FILE
from ..console import detect_tty, get_console_manager
from ..errors import ConfigurationError
from ..resolver import ConfigurationResolver, ResolvedToolConfig
from ..state import ToolchainRegistry
from ..tools import TOOLS, ToolSpec
from .options import (
    CONFIG_OPTION,
    DOWNLOADS_FILE_OPTION,
    EMOJI_OPTION,
    VERBOSE_OPTION,
    build_common_options,
)
from .shared import load_context

LOGGER = logging.getLogger(__name__)


def describe(spec: ToolSpec, resolver: ConfigurationResolver, registry: ToolchainRegistry) -> tuple[str, str, str, str]:
    """Return ``(wanted version, recorded version, status, executable)`` for *spec*."""

    recorded = registry.get(spec.key)
    recorded_version = recorded.version if recorded is not None else ""
    try:
        resolved: ResolvedToolConfig = resolver.resolve(spec, registry)
    except ConfigurationError as exc:
        LOGGER.debug("cannot resolve %s: %s", spec.key, exc)
        return "-", recorded_version or "-", "unconfigured", "-"

    if resolved.user_executable is not None:
        status = "pinned" if resolved.user_executable.is_file() else "pinned (missing)"
        return resolved.version, recorded_version or "-", status, str(resolved.user_executable)
    executable = resolved.recorded_executable
    if executable is None:
        return resolved.version, "-", "not installed", "-"
    if not executable.is_file():
        return resolved.version, recorded_version, "missing", str(executable)
    if recorded_version != resolved.version:
        return resolved.version, recorded_version, "outdated", str(executable)
    return resolved.version, recorded_version, "installed", str(executable)


def status_command(
    config: CONFIG_OPTION = Path(DEFAULT_CONFIG_FILE),
    downloads_file: DOWNLOADS_FILE_OPTION = None,
    verbose: VERBOSE_OPTION = False,
    emoji: EMOJI_OPTION = True,
) -> None:
    """Show the configured and recorded version of every tool."""

    options = build_common_options(config, downloads_file, verbose, emoji)
    context = load_context(options)
    session = context.session
    color = detect_tty()

    table = Table(title="Toolchain", box=box.ROUNDED, header_style="bold" if color else None)
    for column in ("Tool", "Wanted", "Recorded", "Status", "Executable"):
        table.add_column(column)
    for spec in TOOLS.values():
        table.add_row(spec.key, *describe(spec, session.resolver, session.registry))
    get_console_manager().get(color=color, emoji=emoji).print(table)


def register(app: typer.Typer) -> None:
    app.command("status")(status_command)


__all__ = ["describe", "register", "status_command"]
