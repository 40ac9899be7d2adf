# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate (and optionally fetch) Python interpreters for tool installs."""

from __future__ import annotations

import logging
import os
import re
import shutil
import sys
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from functools import partial
from pathlib import Path
from subprocess import CompletedProcess
from typing import Final

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from .errors import InterpreterNotFoundError
from .models import Interpreter
from .process_utils import SubprocessExecutionError, run_command

LOGGER = logging.getLogger(__name__)

Runner = Callable[..., CompletedProcess[str]]

PROBE_SCRIPT: Final[str] = "import platform, sys; print(platform.python_version(), sys.implementation.name)"
_EXECUTABLE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(?:python|pypy)(?P<version>\d+(?:\.\d+)*)?(?:\.exe)?$")
_BARE_VERSION: Final[re.Pattern[str]] = re.compile(r"^\d+(?:\.\d+){0,2}$")
_SEARCH_MINORS: Final[tuple[int, ...]] = tuple(range(14, 7, -1))


class PythonPreference(str, Enum):
    """Whether system or uv-managed interpreters are searched first."""

    ONLY_MANAGED = "only-managed"
    MANAGED = "managed"
    SYSTEM = "system"
    ONLY_SYSTEM = "only-system"

    def allows_system(self) -> bool:
        return self is not PythonPreference.ONLY_MANAGED

    def allows_managed(self) -> bool:
        return self is not PythonPreference.ONLY_SYSTEM


class PythonFetch(str, Enum):
    """Whether missing managed interpreters may be downloaded."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"


class RequestKind(str, Enum):
    PATH = "path"
    EXECUTABLE = "executable"
    VERSION = "version"


@dataclass(frozen=True, slots=True)
class PythonRequest:
    """A user request for an interpreter: a path, an executable name or a version range."""

    raw: str
    kind: RequestKind
    specifier: SpecifierSet | None = None

    @classmethod
    def parse(cls, raw: str) -> PythonRequest:
        """Classify ``raw`` as a path, executable name or version specifier."""

        value = raw.strip()
        if os.sep in value or (os.altsep and os.altsep in value) or value.startswith("."):
            return cls(raw=value, kind=RequestKind.PATH)
        match = _EXECUTABLE_PATTERN.match(value)
        if match:
            version = match.group("version")
            return cls(raw=value, kind=RequestKind.EXECUTABLE, specifier=_bare_specifier(version) if version else None)
        if _BARE_VERSION.match(value):
            return cls(raw=value, kind=RequestKind.VERSION, specifier=_bare_specifier(value))
        try:
            specifier = SpecifierSet(value)
        except InvalidSpecifier:
            return cls(raw=value, kind=RequestKind.EXECUTABLE)
        return cls(raw=value, kind=RequestKind.VERSION, specifier=specifier)

    def satisfied(self, interpreter: Interpreter) -> bool:
        """Return ``True`` when ``interpreter`` fulfils this request."""

        if self.kind is RequestKind.PATH:
            return _same_path(Path(self.raw).expanduser(), interpreter.executable)
        if self.specifier is not None:
            return self.specifier.contains(interpreter.version, prereleases=True)
        located = shutil.which(self.raw)
        return located is not None and _same_path(Path(located), interpreter.executable)

    def __str__(self) -> str:
        return self.raw


def _bare_specifier(version: str) -> SpecifierSet:
    if version.count(".") >= 2:
        return SpecifierSet(f"=={version}")
    return SpecifierSet(f"=={version}.*")


def _same_path(left: Path, right: Path) -> bool:
    try:
        return left.resolve() == right.resolve()
    except OSError:
        return False


class InterpreterFinder:
    """Discover interpreters on ``PATH`` and fall back to ``uv python``."""

    def __init__(self, runner: Runner = run_command) -> None:
        self._runner = runner
        self._probed: dict[Path, Interpreter | None] = {}

    def find_or_fetch(
        self,
        request: PythonRequest | None,
        *,
        preference: PythonPreference = PythonPreference.MANAGED,
        fetch: PythonFetch = PythonFetch.AUTOMATIC,
        offline: bool = False,
    ) -> Interpreter:
        """Return an interpreter satisfying ``request`` or raise.

        Raises:
            InterpreterNotFoundError: When neither system nor managed lookup
                yields a matching interpreter.
        """

        order: list[Callable[[], Interpreter | None]] = []
        system = partial(self._find_system, request)
        managed = partial(self._find_managed, request, fetch=fetch, offline=offline)
        if preference in (PythonPreference.ONLY_MANAGED, PythonPreference.MANAGED):
            order.append(managed)
            if preference.allows_system():
                order.append(system)
        else:
            order.append(system)
            if preference.allows_managed():
                order.append(managed)

        for strategy in order:
            interpreter = strategy()
            if interpreter is not None:
                LOGGER.debug("Using Python %s", interpreter)
                return interpreter

        described = f"matching `{request}`" if request is not None else "on the system"
        raise InterpreterNotFoundError(f"No interpreter found {described}")

    def probe(self, executable: Path) -> Interpreter | None:
        """Query ``executable`` for its version, caching the answer per path."""

        if executable in self._probed:
            return self._probed[executable]
        interpreter: Interpreter | None = None
        try:
            completed = self._runner([str(executable), "-c", PROBE_SCRIPT], capture_output=True)
        except (OSError, ValueError, SubprocessExecutionError) as exc:
            LOGGER.debug("Failed to query %s: %s", executable, exc)
        else:
            interpreter = _parse_probe(executable, completed.stdout)
        self._probed[executable] = interpreter
        return interpreter

    def _find_system(self, request: PythonRequest | None) -> Interpreter | None:
        for candidate in _system_candidates(request):
            interpreter = self.probe(candidate)
            if interpreter is None:
                continue
            if request is None or request.satisfied(interpreter):
                return interpreter
        return None

    def _find_managed(
        self,
        request: PythonRequest | None,
        *,
        fetch: PythonFetch,
        offline: bool,
    ) -> Interpreter | None:
        if shutil.which("uv") is None or (request is not None and request.kind is RequestKind.PATH):
            return None
        target = [request.raw] if request is not None else []
        found = self._uv_find(target)
        if found is None and fetch is PythonFetch.AUTOMATIC and not offline:
            LOGGER.debug("Fetching managed Python %s", request or "(default)")
            try:
                self._runner(["uv", "python", "install", *target], capture_output=True)
            except SubprocessExecutionError as exc:
                LOGGER.debug("uv python install failed: %s", exc)
                return None
            found = self._uv_find(target)
        return found

    def _uv_find(self, target: Sequence[str]) -> Interpreter | None:
        try:
            completed = self._runner(["uv", "python", "find", *target], capture_output=True)
        except SubprocessExecutionError:
            return None
        location = completed.stdout.strip()
        return self.probe(Path(location)) if location else None


def _parse_probe(executable: Path, output: str) -> Interpreter | None:
    parts = output.strip().split()
    if not parts:
        return None
    try:
        version = Version(parts[0])
    except InvalidVersion:
        return None
    implementation = parts[1] if len(parts) > 1 else "cpython"
    return Interpreter(executable=executable, version=version, implementation=implementation)


def _system_candidates(request: PythonRequest | None) -> Iterator[Path]:
    seen: set[Path] = set()

    def _emit(path: Path | None) -> Iterator[Path]:
        if path is not None and path not in seen:
            seen.add(path)
            yield path

    if request is not None and request.kind is RequestKind.PATH:
        yield from _emit(Path(request.raw).expanduser())
        return
    if request is not None and request.kind is RequestKind.EXECUTABLE:
        located = shutil.which(request.raw)
        yield from _emit(Path(located) if located else None)
        return
    names = ["python3", "python", *(f"python3.{minor}" for minor in _SEARCH_MINORS)]
    for name in names:
        located = shutil.which(name)
        yield from _emit(Path(located) if located else None)
    yield from _emit(Path(sys.executable) if sys.executable else None)


__all__ = [
    "InterpreterFinder",
    "PythonFetch",
    "PythonPreference",
    "PythonRequest",
    "RequestKind",
]
