# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Host operating system and architecture detection."""

from __future__ import annotations

import platform as _platform
from dataclasses import dataclass
from typing import Final

_ARCH_ALIASES: Final[dict[str, str]] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "armv7l": "arm",
    "armv6l": "arm",
    "ppc64le": "ppc64le",
    "riscv64": "riscv64",
    "s390x": "s390x",
}


def _normalize_architecture(machine: str) -> str:
    normalized = machine.lower()
    return _ARCH_ALIASES.get(normalized, normalized)


@dataclass(frozen=True, slots=True)
class HostPlatform:
    """Host identity using Go naming (``linux``/``darwin``, ``amd64``/``arm64``).

    Individual tools translate these names into their own release vocabulary.
    """

    os: str
    arch: str

    @classmethod
    def detect(cls) -> HostPlatform:
        """Return the platform of the running interpreter."""

        return cls(os=_platform.system().lower(), arch=_normalize_architecture(_platform.machine()))


__all__ = ["HostPlatform"]
