# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Cap'n Proto code generation: compile schemas and feed them to a plugin."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ToolbootError
from .process_utils import CommandRunner, run_command

LOGGER = logging.getLogger(__name__)

DEFAULT_IMPORT_PATHS: tuple[str, ...] = ("capnp",)


@dataclass(slots=True)
class GenerateReport:
    """Schemas processed by :func:`generate_capnp` and any per-file failures."""

    messages: list[str] = field(default_factory=list)
    generated: list[Path] = field(default_factory=list)
    failures: dict[Path, ToolbootError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def find_schemas(directories: Sequence[Path]) -> list[tuple[Path, Path]]:
    """Return ``(directory, schema)`` pairs for every ``*.capnp`` file, sorted per directory."""

    return [(directory, schema) for directory in directories for schema in sorted(directory.glob("*.capnp"))]


def compile_command(
    capnp: Path, directory: Path, schema: Path, *, std_dir: Path, import_paths: Sequence[str]
) -> list[str]:
    """Return the ``capnp compile`` invocation that writes a CodeGeneratorRequest to stdout."""

    args = [str(capnp), "compile", "--output=-", f"--src-prefix={directory}/", f"--import-path={std_dir}"]
    args.extend(f"--import-path={path}" for path in import_paths)
    args.append(str(schema))
    return args


def generate_capnp(
    capnp: Path,
    plugin: Path,
    directories: Sequence[Path],
    std_dir: Path,
    import_paths: Sequence[str] = DEFAULT_IMPORT_PATHS,
    *,
    runner: CommandRunner = run_command,
) -> GenerateReport:
    """Compile every schema in *directories* and run *plugin* on the result.

    Each schema is compiled with its stdout captured; the captured request is
    piped into the plugin, which runs in the schema's directory. A failure in
    either stage is recorded for that schema and the remaining schemas are
    still processed.

    Args:
        capnp: Schema compiler executable.
        plugin: Code-generator plugin executable.
        directories: Directories searched for ``*.capnp`` files.
        std_dir: Directory holding the compiler's standard schemas.
        import_paths: Additional import paths.
        runner: Command runner.

    Returns:
        GenerateReport: Generated schemas, messages and failures.
    """

    report = GenerateReport()
    for directory, schema in find_schemas(directories):
        args = compile_command(capnp, directory, schema, std_dir=std_dir, import_paths=import_paths)
        report.messages.append(f"Compiling {schema}")
        try:
            completed = runner(args, capture_stdout=True)
            report.messages.append(f"Running {plugin} for {schema} in {schema.parent}")
            runner([str(plugin)], cwd=schema.parent, stdin_data=completed.stdout or b"")
        except (ToolbootError, OSError) as exc:
            error = exc if isinstance(exc, ToolbootError) else ToolbootError(str(exc))
            report.messages.append(f"Failed to generate code for {schema}: {exc}")
            report.failures[schema] = error
            LOGGER.debug("code generation for %s failed", schema, exc_info=True)
            continue
        report.generated.append(schema)
    return report


__all__ = ["DEFAULT_IMPORT_PATHS", "GenerateReport", "compile_command", "find_schemas", "generate_capnp"]
