# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``generate-capnp`` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from ..config import DEFAULT_CONFIG_FILE
from ..coordinator import Coordinator
from ..errors import ToolbootError
from ..generate import generate_capnp
from ..log import fail, ok, replay
from ..tools import CAPNPROTO, GO_CAPNP
from .options import (
    CONFIG_OPTION,
    DOWNLOADS_FILE_OPTION,
    EMOJI_OPTION,
    VERBOSE_OPTION,
    build_common_options,
)
from .shared import load_context

DIR_OPTION = Annotated[
    list[Path] | None,
    typer.Option(
        "--dir",
        "-d",
        help="Directory containing *.capnp schemas; repeatable. Defaults to CapnpDirs from the configuration.",
        show_default=False,
    ),
]
STD_DIR_OPTION = Annotated[
    Path | None,
    typer.Option(
        "--std-dir",
        help="Directory holding go.capnp; defaults to StdDir, then the bootstrapped go-capnp std directory.",
        show_default=False,
    ),
]


def generate_capnp_command(
    directory: DIR_OPTION = None,
    std_dir: STD_DIR_OPTION = None,
    config: CONFIG_OPTION = Path(DEFAULT_CONFIG_FILE),
    downloads_file: DOWNLOADS_FILE_OPTION = None,
    verbose: VERBOSE_OPTION = False,
    emoji: EMOJI_OPTION = True,
) -> None:
    """Generate Go code for every Cap'n Proto schema in the configured directories."""

    options = build_common_options(config, downloads_file, verbose, emoji)
    context = load_context(options)
    settings = context.user_config.build_tool.generate.capnp
    coordinator = Coordinator(context.session)

    try:
        capnp = coordinator.executable_for(CAPNPROTO.key)
        plugin = coordinator.executable_for(GO_CAPNP.key)
    except ToolbootError as exc:
        fail(str(exc), use_emoji=emoji)
        raise typer.Exit(code=1) from exc
    missing = [
        spec for spec, path in ((CAPNPROTO, capnp), (GO_CAPNP, plugin)) if path is None or not path.is_file()
    ]
    if missing or capnp is None or plugin is None:
        for spec in missing:
            fail(
                f"{spec.display_name} is not installed; run `toolboot bootstrap-{spec.cli_name}` first",
                use_emoji=emoji,
            )
        raise typer.Exit(code=1)

    directories = directory or [Path(entry) for entry in settings.capnp_dirs]
    if not directories:
        fail("No schema directories given; pass --dir or set CapnpDirs", use_emoji=emoji)
        raise typer.Exit(code=1)
    if std_dir is None:
        std_dir = Path(settings.std_dir) if settings.std_dir else plugin.parent.parent / "std"

    report = generate_capnp(capnp, plugin, directories, std_dir)
    if verbose or not report.ok:
        replay(report.messages, use_emoji=emoji)
    for schema, error in report.failures.items():
        fail(f"{schema}: {error}", use_emoji=emoji)
    if not report.ok:
        raise typer.Exit(code=1)
    ok(f"Generated code for {len(report.generated)} schema(s)", use_emoji=emoji)


def register(app: typer.Typer) -> None:
    app.command("generate-capnp")(generate_capnp_command)


__all__ = ["generate_capnp_command", "register"]
