# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Placeholder expansion for URL, filename and directory templates."""

from __future__ import annotations

from .errors import ConfigurationError


class _TemplateValues(dict[str, str]):
    """Mapping handed to :meth:`str.format_map` that reports unknown placeholders."""

    def __init__(self, context: str, values: dict[str, str]) -> None:
        super().__init__(values)
        self._context = context

    def __missing__(self, key: str) -> str:
        raise ConfigurationError(f"{self._context}: unknown placeholder {{{key}}}")


def expand_template(template: str, *, context: str, **values: str) -> str:
    """Expand ``{name}`` placeholders in *template*.

    Args:
        template: Template text using :meth:`str.format` syntax.
        context: Description of the template used in error messages.
        **values: Placeholder values.

    Returns:
        str: The expanded text.

    Raises:
        ConfigurationError: The template references an unknown placeholder or
            is malformed.
    """

    try:
        return template.format_map(_TemplateValues(context, values))
    except (ValueError, IndexError, AttributeError) as exc:
        raise ConfigurationError(f"{context}: malformed template {template!r}: {exc}") from exc


__all__ = ["expand_template"]
