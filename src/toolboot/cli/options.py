# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared Typer option declarations and the normalised options they build."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from ..config import DEFAULT_CONFIG_FILE

CONFIG_OPTION = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        envvar="CONFIG",
        help="User configuration file.",
    ),
]
DOWNLOADS_FILE_OPTION = Annotated[
    Path | None,
    typer.Option(
        "--downloads-file",
        envvar="DOWNLOADS_FILE",
        help="Download manifest; defaults to DownloadsFile from the configuration, then ./downloads.toml.",
        show_default=False,
    ),
]
VERBOSE_OPTION = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Print progress messages and debug logging."),
]
EMOJI_OPTION = Annotated[
    bool,
    typer.Option("--emoji/--no-emoji", help="Toggle emoji output."),
]


@dataclass(slots=True)
class CommonOptions:
    """Normalised inputs shared by every command."""

    config: Path = Path(DEFAULT_CONFIG_FILE)
    downloads_file: Path | None = None
    verbose: bool = False
    use_emoji: bool = True


def build_common_options(
    config: Path,
    downloads_file: Path | None,
    verbose: bool,
    emoji: bool,
) -> CommonOptions:
    """Construct :class:`CommonOptions` from Typer parameters."""

    return CommonOptions(config=config, downloads_file=downloads_file, verbose=verbose, use_emoji=emoji)


__all__ = [
    "CONFIG_OPTION",
    "DOWNLOADS_FILE_OPTION",
    "EMOJI_OPTION",
    "VERBOSE_OPTION",
    "CommonOptions",
    "build_common_options",
]
