# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Requirement parsing and full solves delegated to ``uv pip compile``."""

from __future__ import annotations

import logging
import tempfile
import tomllib
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from subprocess import CompletedProcess
from typing import Final
from urllib.parse import parse_qs, urlsplit

from packaging.requirements import InvalidRequirement, Requirement

from .errors import ResolutionError
from .models import Interpreter, Resolution
from .process_utils import SubprocessExecutionError, run_command
from .settings import ToolkeepSettings
from .uv import uv_command, uv_env

LOGGER = logging.getLogger(__name__)

Runner = Callable[..., CompletedProcess[str]]

_URL_PREFIXES: Final[tuple[str, ...]] = ("git+", "hg+", "svn+", "bzr+", "http://", "https://", "file:")


def parse_requirement(spec: str) -> Requirement:
    """Parse ``spec`` into a named requirement.

    Unnamed sources are named from an ``#egg=`` fragment, or from the
    ``[project].name`` of a local project directory.

    Raises:
        ResolutionError: When ``spec`` is malformed or no name can be inferred.
    """

    try:
        return Requirement(spec)
    except InvalidRequirement as exc:
        parse_error = exc

    name = _egg_name(spec)
    if name is not None:
        url = spec.split("#", 1)[0]
        return Requirement(f"{name} @ {url}")

    if not spec.startswith(_URL_PREFIXES):
        candidate = Path(spec).expanduser()
        if candidate.is_dir():
            name = _project_name(candidate)
            if name is not None:
                return Requirement(f"{name} @ {candidate.resolve().as_uri()}")
            raise ResolutionError(f"Unable to determine the package name of `{spec}`: no [project].name found")
        raise ResolutionError(f"Failed to parse requirement `{spec}`: {parse_error}") from parse_error

    raise ResolutionError(f"Unable to determine the package name of `{spec}`; use the `name @ url` form")


def _egg_name(spec: str) -> str | None:
    fragment = urlsplit(spec).fragment
    if not fragment:
        return None
    names = parse_qs(fragment).get("egg")
    return names[0] if names else None


def _project_name(directory: Path) -> str | None:
    pyproject = directory / "pyproject.toml"
    if not pyproject.is_file():
        return None
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ResolutionError(f"Failed to read {pyproject}: {exc}") from exc
    name = data.get("project", {}).get("name")
    return str(name) if name else None


class UvRequirementResolver:
    """Resolve tool requirements without touching any persisted state."""

    def __init__(self, settings: ToolkeepSettings, runner: Runner = run_command) -> None:
        self._settings = settings
        self._runner = runner

    def resolve_requirements(self, specs: Iterable[str], interpreter: Interpreter) -> list[Requirement]:
        """Return one named requirement per entry of ``specs``, preserving order."""

        requirements = [parse_requirement(spec) for spec in specs]
        LOGGER.debug("Resolved %d requirement(s) against %s", len(requirements), interpreter)
        return requirements

    def resolve_environment(
        self,
        requirements: Sequence[Requirement],
        interpreter: Interpreter,
        *,
        upgrade: bool = False,
    ) -> Resolution:
        """Solve ``requirements`` into pinned versions for ``interpreter``.

        Raises:
            ResolutionError: When ``uv pip compile`` cannot produce a solution.
        """

        with tempfile.TemporaryDirectory(prefix="toolkeep-") as scratch:
            infile = Path(scratch) / "requirements.in"
            infile.write_text("".join(f"{requirement}\n" for requirement in requirements), encoding="utf-8")
            cmd = uv_command(
                self._settings,
                "pip",
                "compile",
                str(infile),
                "--python",
                str(interpreter.executable),
                "--quiet",
                "--no-header",
                "--no-annotate",
            )
            if upgrade:
                cmd.append("--upgrade")
            try:
                completed = self._runner(cmd, capture_output=True, env=uv_env(self._settings))
            except FileNotFoundError as exc:
                raise ResolutionError(str(exc)) from exc
            except SubprocessExecutionError as exc:
                detail = (exc.stderr or "").strip() or str(exc)
                raise ResolutionError(f"Failed to resolve requirements: {detail}") from exc

        pins = tuple(
            line.strip()
            for line in completed.stdout.splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        )
        LOGGER.debug("Resolved %d pinned package(s)", len(pins))
        return Resolution(pins=pins)


__all__ = ["UvRequirementResolver", "parse_requirement"]
