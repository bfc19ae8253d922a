# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands."""

from __future__ import annotations

import typer

from . import bootstrap, generate, status

app = typer.Typer(
    help="Bootstrap the build toolchain: download, verify, unpack, build and record tools.",
    add_completion=False,
    no_args_is_help=True,
)
bootstrap.register(app)
generate.register(app)
status.register(app)


def main() -> None:
    """Console-script entry point."""

    app()


__all__ = ["app", "main"]
