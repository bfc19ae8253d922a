# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Session construction and report rendering shared by CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from ..bootstrap import BootstrapSession, ToolOutcome
from ..config import DEFAULT_DOWNLOADS_FILE, Directories, UserConfig, load_user_config
from ..console import detect_tty, get_console_manager
from ..coordinator import BootstrapReport
from ..errors import ToolbootError
from ..log import configure_debug_logging, fail, info, ok, replay, section, warn
from ..manifest import load_manifest
from ..resolver import ConfigurationResolver
from ..state import read_state
from .options import CommonOptions
from .progress import RichDownloadProgress


@dataclass(slots=True)
class CLIContext:
    """Everything a command needs after configuration has been loaded."""

    options: CommonOptions
    user_config: UserConfig
    session: BootstrapSession


def downloads_file_for(options: CommonOptions, user_config: UserConfig) -> Path:
    """Pick the manifest path: CLI/env value, then ``DownloadsFile``, then the default."""

    if options.downloads_file is not None:
        return options.downloads_file
    if user_config.build_tool.downloads_file:
        return Path(user_config.build_tool.downloads_file).expanduser()
    return Path(DEFAULT_DOWNLOADS_FILE)


def load_context(options: CommonOptions) -> CLIContext:
    """Load configuration, manifest and registry, exiting with status 1 on failure."""

    configure_debug_logging(options.verbose)
    try:
        if not options.config.is_file():
            warn(f"{options.config} not found; using default settings", use_emoji=options.use_emoji)
        user_config = load_user_config(options.config)
        manifest = load_manifest(downloads_file_for(options, user_config))
        directories = Directories.from_config(user_config.build_tool)
        registry = read_state(directories.toolchain_dir)
    except ToolbootError as exc:
        fail(str(exc), use_emoji=options.use_emoji)
        raise typer.Exit(code=1) from exc

    resolver = ConfigurationResolver(user_config=user_config, manifest=manifest, directories=directories)
    progress = RichDownloadProgress(get_console_manager().stderr()) if detect_tty() else None
    session = BootstrapSession(
        resolver=resolver,
        directories=directories,
        registry=registry,
        user_agent=user_config.build_tool.download_user_agent,
        progress=progress,
    )
    return CLIContext(options=options, user_config=user_config, session=session)


def render_outcome(outcome: ToolOutcome, options: CommonOptions) -> None:
    """Print one tool's outcome; verbose runs get a section with its messages."""

    if options.verbose:
        section(outcome.display_name, use_color=detect_tty())
    if outcome.ok:
        if options.verbose:
            replay(outcome.messages, use_emoji=options.use_emoji)
        location = f" ({outcome.executable})" if outcome.executable is not None else ""
        summary = f"{outcome.display_name} {outcome.version}: {outcome.state.value}{location}"
        if outcome.state.terminal_skip:
            info(summary, use_emoji=options.use_emoji)
        else:
            ok(summary, use_emoji=options.use_emoji)
        return
    replay(outcome.messages, use_emoji=options.use_emoji)
    fail(f"{outcome.display_name}: {outcome.error}", use_emoji=options.use_emoji)


def finish_report(report: BootstrapReport, options: CommonOptions) -> None:
    """Print every outcome and exit non-zero when any tool failed."""

    for outcome in report.outcomes:
        render_outcome(outcome, options)
    if not report.ok:
        raise typer.Exit(code=1)


__all__ = ["CLIContext", "downloads_file_for", "finish_report", "load_context", "render_outcome"]
