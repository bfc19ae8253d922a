# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Bootstrap several tools in dependency order against one registry."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .bootstrap import BootstrapSession, BootstrapState, BuildInputs, ToolBootstrapper, ToolOutcome, bootstrap_tool
from .errors import BootstrapError, ConfigurationError, DependencyError, StateError, ToolbootError
from .resolver import GoToolchain
from .state import write_state
from .tools import TOOLS, ToolSpec

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class BootstrapReport:
    """Outcomes of one coordinated run, in execution order."""

    outcomes: list[ToolOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def failures(self) -> list[ToolOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def outcome(self, key: str) -> ToolOutcome | None:
        for outcome in self.outcomes:
            if outcome.key == key:
                return outcome
        return None


class Coordinator:
    """Run tool bootstraps sequentially, dependencies first.

    The registry held by the session is shared by every tool and written back
    to disk after each tool that installs successfully.
    """

    def __init__(self, session: BootstrapSession, catalogue: Mapping[str, ToolSpec] | None = None) -> None:
        self.session = session
        self.catalogue = dict(catalogue) if catalogue is not None else dict(TOOLS)
        self._go: GoToolchain | None = None

    def plan(self, keys: Iterable[str], *, expand: Callable[[ToolSpec], bool] | None = None) -> list[ToolSpec]:
        """Return *keys* plus their transitive dependencies in catalogue order.

        Args:
            keys: Catalogue keys to bootstrap.
            expand: Decides whether a tool's dependencies are pulled in;
                every tool's are when omitted.

        Raises:
            KeyError: A key or dependency is not in the catalogue.
        """

        wanted: set[str] = set()
        pending = list(keys)
        while pending:
            key = pending.pop()
            if key in wanted:
                continue
            spec = self.catalogue[key]
            wanted.add(key)
            if expand is None or expand(spec):
                pending.extend(spec.dependencies)
        ordered: list[ToolSpec] = []
        placed: set[str] = set()
        remaining = [spec for key, spec in self.catalogue.items() if key in wanted]
        while remaining:
            ready = [spec for spec in remaining if (set(spec.dependencies) & wanted) <= placed]
            if not ready:
                cycle = ", ".join(spec.key for spec in remaining)
                raise ConfigurationError(f"Dependency cycle between {cycle}")
            for spec in ready:
                ordered.append(spec)
                placed.add(spec.key)
            remaining = [spec for spec in remaining if spec.key not in placed]
        return ordered

    def run(self, keys: Iterable[str]) -> BootstrapReport:
        """Bootstrap *keys* and, for the tools that will be built, their dependencies.

        A tool that is pinned by the user or already installed at the wanted
        version is reported without touching its dependencies. A tool whose
        dependency failed is not attempted and is reported with a
        :class:`DependencyError`. Failures never stop independent tools.
        """

        building: dict[str, bool] = {}

        def expand(spec: ToolSpec) -> bool:
            building[spec.key] = self.will_build(spec)
            return building[spec.key]

        report = BootstrapReport()
        outcomes: dict[str, ToolOutcome] = {}
        for spec in self.plan(keys, expand=expand):
            outcome = self._run_one(spec, outcomes, building=building[spec.key])
            outcomes[spec.key] = outcome
            report.outcomes.append(outcome)
        return report

    def will_build(self, spec: ToolSpec) -> bool:
        """Return whether bootstrapping *spec* would reach its build step.

        Tools that are pinned, installed at the wanted version, or whose
        configuration does not resolve never build.
        """

        try:
            state = ToolBootstrapper(spec, self.session).survey()
        except ConfigurationError:
            return False
        return not state.terminal_skip

    def _run_one(self, spec: ToolSpec, outcomes: Mapping[str, ToolOutcome], *, building: bool = True) -> ToolOutcome:
        inputs = BuildInputs()
        if building:
            failed = [key for key in spec.dependencies if not outcomes[key].ok]
            if failed:
                names = ", ".join(outcomes[key].display_name for key in failed)
                message = f"Not bootstrapping {spec.display_name} because {names} failed"
                return self._failure(spec, [message], DependencyError(message))

            try:
                inputs = self._inputs_for(spec, outcomes)
            except ConfigurationError as exc:
                return self._failure(spec, [f"Failed to resolve the inputs of {spec.display_name}"], exc)

        try:
            outcome = bootstrap_tool(spec, self.session, inputs)
        except BootstrapError as exc:
            cause = exc.__cause__ if isinstance(exc.__cause__, ToolbootError) else exc
            LOGGER.debug("bootstrap of %s failed in state %s", spec.key, exc.state)
            return self._failure(spec, exc.messages, cause)

        if outcome.changed:
            try:
                write_state(self.session.directories.toolchain_dir, self.session.registry)
            except StateError as exc:
                return self._failure(spec, [*outcome.messages, "Failed to update the toolchain registry"], exc)
        return outcome

    def _inputs_for(self, spec: ToolSpec, outcomes: Mapping[str, ToolOutcome]) -> BuildInputs:
        dependencies: dict[str, Path] = {}
        for key in spec.dependencies:
            executable = outcomes[key].executable
            if executable is not None:
                dependencies[key] = executable
        go = self.go_toolchain() if spec.build.requires_go else None
        return BuildInputs(dependencies=dependencies, go=go)

    def go_toolchain(self) -> GoToolchain:
        if self._go is None:
            self._go = self.session.resolver.resolve_go(self.session.registry)
        return self._go

    def executable_for(self, key: str) -> Path | None:
        """Return the effective executable of *key* without bootstrapping it."""

        resolved = self.session.resolver.resolve(self.catalogue[key], self.session.registry)
        return resolved.executable

    @staticmethod
    def _failure(spec: ToolSpec, messages: list[str], error: ToolbootError) -> ToolOutcome:
        return ToolOutcome(
            key=spec.key,
            display_name=spec.display_name,
            state=BootstrapState.FAILED,
            messages=list(messages),
            error=error,
        )


__all__ = ["BootstrapReport", "Coordinator"]
