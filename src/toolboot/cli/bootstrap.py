# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``bootstrap-*`` commands."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import typer

from ..config import DEFAULT_CONFIG_FILE
from ..coordinator import Coordinator
from ..tools import TOOLS, ToolSpec
from .options import (
    CONFIG_OPTION,
    DOWNLOADS_FILE_OPTION,
    EMOJI_OPTION,
    VERBOSE_OPTION,
    CommonOptions,
    build_common_options,
)
from .shared import finish_report, load_context


def run_bootstrap(keys: Sequence[str], options: CommonOptions) -> None:
    """Bootstrap *keys* (plus dependencies) and render the report."""

    context = load_context(options)
    report = Coordinator(context.session).run(keys)
    finish_report(report, options)


def _bootstrap_command(spec: ToolSpec) -> Callable[..., None]:
    def command(
        config: CONFIG_OPTION = Path(DEFAULT_CONFIG_FILE),
        downloads_file: DOWNLOADS_FILE_OPTION = None,
        verbose: VERBOSE_OPTION = False,
        emoji: EMOJI_OPTION = True,
    ) -> None:
        run_bootstrap([spec.key], build_common_options(config, downloads_file, verbose, emoji))

    command.__doc__ = f"Download, verify, build and record {spec.display_name}."
    if spec.dependencies:
        needs = ", ".join(TOOLS[key].display_name for key in spec.dependencies if key in TOOLS)
        command.__doc__ += f" Bootstraps {needs} first."
    return command


def bootstrap_all_command(
    config: CONFIG_OPTION = Path(DEFAULT_CONFIG_FILE),
    downloads_file: DOWNLOADS_FILE_OPTION = None,
    verbose: VERBOSE_OPTION = False,
    emoji: EMOJI_OPTION = True,
) -> None:
    """Bootstrap every known tool in dependency order."""

    run_bootstrap(list(TOOLS), build_common_options(config, downloads_file, verbose, emoji))


def register(app: typer.Typer) -> None:
    for spec in TOOLS.values():
        app.command(f"bootstrap-{spec.cli_name}")(_bootstrap_command(spec))
    app.command("bootstrap-all")(bootstrap_all_command)


__all__ = ["bootstrap_all_command", "register", "run_bootstrap"]
