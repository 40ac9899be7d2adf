# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Install orchestration: decide between reuse, update and rebuild, then publish.

The receipt write at the end of :meth:`ToolInstaller.install` is the commit
point. Any failure before it leaves the previous receipt (if any) in place, and
an environment created by the failing call is removed when the tool turns out
to expose no usable entry points.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Final, Protocol

from packaging.requirements import Requirement
from packaging.utils import NormalizedName

from .entrypoints import EntryPointReconciler, entrypoint_paths
from .errors import EntryPointConflictError, NameConflictError, NoEntryPointsError
from .interpreters import PythonFetch, PythonPreference, PythonRequest
from .models import EntryPoint, Interpreter, Resolution, ToolEnvironment, ToolReceipt, tool_name
from .receipts import InstalledTools
from .settings import ToolkeepSettings, find_executable_directory

LOGGER = logging.getLogger(__name__)

Warn = Callable[[str], None]

_PACKAGE_NAME: Final[re.Pattern[str]] = re.compile(r"^([A-Z0-9]|[A-Z0-9][A-Z0-9._-]*[A-Z0-9])$", re.IGNORECASE)


class RequirementResolver(Protocol):
    def resolve_requirements(self, specs: Iterable[str], interpreter: Interpreter) -> list[Requirement]: ...

    def resolve_environment(
        self,
        requirements: Sequence[Requirement],
        interpreter: Interpreter,
        *,
        upgrade: bool = False,
    ) -> Resolution: ...


class EnvironmentManager(Protocol):
    def load(self, name: NormalizedName) -> ToolEnvironment | None: ...

    def create(self, name: NormalizedName, interpreter: Interpreter) -> ToolEnvironment: ...

    def sync(self, environment: ToolEnvironment, resolution: Resolution) -> ToolEnvironment: ...

    def update(
        self,
        environment: ToolEnvironment,
        requirements: Sequence[Requirement],
        *,
        reinstall: bool = False,
        upgrade: bool = False,
    ) -> ToolEnvironment: ...


class InterpreterDiscovery(Protocol):
    def find_or_fetch(
        self,
        request: PythonRequest | None,
        *,
        preference: PythonPreference = PythonPreference.MANAGED,
        fetch: PythonFetch = PythonFetch.AUTOMATIC,
        offline: bool = False,
    ) -> Interpreter: ...


EntryPointLookup = Callable[[ToolEnvironment, str], list[tuple[str, Path]]]


@dataclass(frozen=True, slots=True)
class InstallRequest:
    """Everything the caller asked for in a single ``install`` invocation."""

    package: str
    from_spec: str | None = None
    python: str | None = None
    with_specs: tuple[str, ...] = ()
    force: bool = False
    reinstall: bool = False
    upgrade: bool = False
    python_preference: PythonPreference = PythonPreference.MANAGED
    python_fetch: PythonFetch = PythonFetch.AUTOMATIC

    @property
    def refresh_requested(self) -> bool:
        """Return ``True`` when any flag asks to redo an unchanged install."""

        return self.force or self.reinstall or self.upgrade


class InstallOutcome(str, Enum):
    INSTALLED = "installed"
    ALREADY_INSTALLED = "already-installed"


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Terminal state of an install call."""

    outcome: InstallOutcome
    tool: NormalizedName
    requirements: tuple[Requirement, ...]
    entry_points: tuple[EntryPoint, ...] = field(default_factory=tuple)
    receipt: ToolReceipt | None = None

    @property
    def display_names(self) -> list[str]:
        return [entry.name for entry in self.entry_points]


class ToolInstaller:
    """Drive a tool install from request to committed receipt."""

    def __init__(
        self,
        *,
        settings: ToolkeepSettings,
        tools: InstalledTools,
        interpreters: InterpreterDiscovery,
        resolver: RequirementResolver,
        environments: EnvironmentManager,
        reconciler: EntryPointReconciler | None = None,
        lookup: EntryPointLookup = entrypoint_paths,
        warn: Warn | None = None,
    ) -> None:
        self._settings = settings
        self._tools = tools
        self._interpreters = interpreters
        self._resolver = resolver
        self._environments = environments
        self._reconciler = reconciler or EntryPointReconciler()
        self._lookup = lookup
        self._warn = warn or (lambda message: None)

    def install(self, request: InstallRequest) -> InstallResult:
        """Install ``request`` or report that it is already satisfied.

        Raises:
            NameConflictError: ``--from`` names a different package.
            ResolutionError: Requirements cannot be parsed or solved.
            SyncError: The environment cannot be created or populated.
            NoEntryPointsError: The package exposes no executables.
            EntryPointConflictError: Targets exist and may belong to someone else.
            PublishError: An entry point cannot be written.
        """

        python_request = PythonRequest.parse(request.python) if request.python else None
        # Only used to resolve requirements; a reused environment keeps its own interpreter.
        interpreter = self._interpreters.find_or_fetch(
            python_request,
            preference=request.python_preference,
            fetch=request.python_fetch,
            offline=self._settings.offline,
        )

        primary = self._resolve_primary(request, interpreter)
        requirements = [primary, *self._resolver.resolve_requirements(request.with_specs, interpreter)]
        name = tool_name(primary.name)

        existing_receipt = self._tools.get_tool_receipt(name)
        existing_environment = self._eligible_environment(name, python_request)

        if (
            existing_environment is not None
            and existing_receipt is not None
            and existing_receipt.matches(requirements)
            and not request.refresh_requested
        ):
            LOGGER.debug("Tool `%s` is unchanged; nothing to do", name)
            return InstallResult(
                outcome=InstallOutcome.ALREADY_INSTALLED,
                tool=name,
                requirements=tuple(requirements),
                receipt=existing_receipt,
            )

        # Targets left behind by this tool's previous install are safe to replace.
        reinstall_entry_points = existing_receipt is not None

        environment = self._build_environment(name, requirements, interpreter, existing_environment, request)

        try:
            entry_points = self._entry_points(environment, primary.name)
            self._reconciler.reconcile(
                entry_points,
                reinstall_entry_points=reinstall_entry_points,
                force=request.force,
            )
        except (NoEntryPointsError, EntryPointConflictError):
            if environment.fresh:
                self._tools.remove_environment(name)
            raise

        published = self._reconciler.publish(entry_points)

        LOGGER.debug("Adding receipt for tool `%s`", name)
        receipt = ToolReceipt.from_install(
            requirements=requirements,
            python=request.python,
            entry_points=published,
        )
        self._tools.init().add_tool_receipt(name, receipt)
        return InstallResult(
            outcome=InstallOutcome.INSTALLED,
            tool=name,
            requirements=tuple(requirements),
            entry_points=published,
            receipt=receipt,
        )

    def _resolve_primary(self, request: InstallRequest, interpreter: Interpreter) -> Requirement:
        if request.from_spec is None:
            return self._resolver.resolve_requirements([request.package], interpreter)[0]

        if not _PACKAGE_NAME.match(request.package):
            raise NameConflictError(
                f"Package requirement `{request.from_spec}` provided with `--from` "
                f"conflicts with install request `{request.package}`",
                package=request.package,
                source=request.from_spec,
            )
        primary = self._resolver.resolve_requirements([request.from_spec], interpreter)[0]
        if tool_name(primary.name) != tool_name(request.package):
            raise NameConflictError(
                f"Package name `{primary.name}` provided with `--from` "
                f"does not match install request `{request.package}`",
                package=request.package,
                source=request.from_spec,
            )
        return primary

    def _eligible_environment(
        self,
        name: NormalizedName,
        python_request: PythonRequest | None,
    ) -> ToolEnvironment | None:
        environment = self._tools.get_environment(name, self._environments)
        if environment is None or python_request is None:
            return environment
        if python_request.satisfied(environment.interpreter):
            LOGGER.debug("Found existing environment for tool `%s`", name)
            return environment
        self._warn(
            f"Existing environment for `{name}` does not satisfy the requested Python interpreter: `{python_request}`"
        )
        return None

    def _build_environment(
        self,
        name: NormalizedName,
        requirements: Sequence[Requirement],
        interpreter: Interpreter,
        existing: ToolEnvironment | None,
        request: InstallRequest,
    ) -> ToolEnvironment:
        if existing is not None:
            LOGGER.debug("Updating existing environment for tool `%s`", name)
            return self._environments.update(
                existing,
                requirements,
                reinstall=request.reinstall,
                upgrade=request.upgrade,
            ).reused()

        # Solve before touching disk so a failed resolution leaves prior state intact.
        resolution = self._resolver.resolve_environment(requirements, interpreter, upgrade=request.upgrade)
        created = self._environments.create(name, interpreter)
        synced = self._environments.sync(created, resolution)
        return ToolEnvironment(name=synced.name, root=synced.root, interpreter=synced.interpreter, fresh=True)

    def _entry_points(self, environment: ToolEnvironment, package: str) -> tuple[EntryPoint, ...]:
        discovered = self._lookup(environment, package)
        if not discovered:
            raise NoEntryPointsError(environment.name)
        executable_directory = find_executable_directory(self._settings)
        LOGGER.debug("Installing tool entry points into %s", executable_directory)
        return self._reconciler.targets(discovered, executable_directory)


__all__ = [
    "EnvironmentManager",
    "InstallOutcome",
    "InstallRequest",
    "InstallResult",
    "InterpreterDiscovery",
    "RequirementResolver",
    "ToolInstaller",
]
