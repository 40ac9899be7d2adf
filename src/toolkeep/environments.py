# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Create and populate per-tool virtual environments through ``uv``."""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from subprocess import CompletedProcess

from packaging.requirements import Requirement
from packaging.utils import NormalizedName
from packaging.version import InvalidVersion, Version

from .errors import SyncError
from .interpreters import InterpreterFinder
from .models import Interpreter, Resolution, ToolEnvironment, venv_python
from .process_utils import SubprocessExecutionError, run_command
from .receipts import InstalledTools
from .settings import ToolkeepSettings
from .uv import uv_command, uv_env

LOGGER = logging.getLogger(__name__)

Runner = Callable[..., CompletedProcess[str]]

PYVENV_CFG = "pyvenv.cfg"


def read_pyvenv_cfg(root: Path) -> dict[str, str]:
    """Parse ``pyvenv.cfg`` under ``root`` into a key/value mapping."""

    config: dict[str, str] = {}
    path = root / PYVENV_CFG
    if not path.is_file():
        return config
    for line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.partition("=")
        if sep:
            config[key.strip()] = value.strip()
    return config


class UvEnvironmentManager:
    """Environment lifecycle for tools, stored inside :class:`InstalledTools`."""

    def __init__(
        self,
        settings: ToolkeepSettings,
        tools: InstalledTools,
        finder: InterpreterFinder,
        runner: Runner = run_command,
    ) -> None:
        self._settings = settings
        self._tools = tools
        self._finder = finder
        self._runner = runner

    def load(self, name: NormalizedName) -> ToolEnvironment | None:
        """Return the existing environment for ``name`` when it is usable."""

        root = self._tools.tool_dir(name)
        config = read_pyvenv_cfg(root)
        if not config:
            return None
        python = venv_python(root)
        if not python.exists():
            LOGGER.debug("Ignoring environment without interpreter at %s", root)
            return None
        interpreter = _interpreter_from_config(python, config) or self._finder.probe(python)
        if interpreter is None:
            return None
        return ToolEnvironment(name=name, root=root, interpreter=interpreter, fresh=False)

    def create(self, name: NormalizedName, interpreter: Interpreter) -> ToolEnvironment:
        """Create an empty environment for ``name``, replacing any prior one.

        Raises:
            SyncError: When ``uv venv`` fails; the partial directory is removed.
        """

        root = self._tools.tool_dir(name)
        if self._tools.remove_environment(name):
            LOGGER.debug("Replaced existing environment for tool `%s`", name)
        self._tools.init()
        cmd = uv_command(self._settings, "venv", str(root), "--python", str(interpreter.executable), "--quiet")
        try:
            self._runner(cmd, capture_output=True, env=uv_env(self._settings))
        except (FileNotFoundError, SubprocessExecutionError) as exc:
            self._tools.remove_environment(name)
            raise SyncError(f"Failed to create environment for tool `{name}`: {_detail(exc)}") from exc
        environment = ToolEnvironment(name=name, root=root, interpreter=interpreter, fresh=True)
        LOGGER.debug("Created environment for tool `%s` at %s", name, root)
        return environment

    def sync(self, environment: ToolEnvironment, resolution: Resolution) -> ToolEnvironment:
        """Install exactly the pinned ``resolution`` into ``environment``.

        Raises:
            SyncError: When ``uv pip sync`` fails; an environment created by
                this install is removed so it is never loaded as usable.
        """

        with tempfile.TemporaryDirectory(prefix="toolkeep-") as scratch:
            pinned = Path(scratch) / "requirements.txt"
            pinned.write_text("".join(f"{pin}\n" for pin in resolution.pins), encoding="utf-8")
            try:
                self._run_pip(environment, "sync", str(pinned))
            except SyncError:
                if environment.fresh:
                    self._tools.remove_environment(environment.name)
                raise
        return environment

    def update(
        self,
        environment: ToolEnvironment,
        requirements: Sequence[Requirement],
        *,
        reinstall: bool = False,
        upgrade: bool = False,
    ) -> ToolEnvironment:
        """Bring an existing environment in line with ``requirements`` in place."""

        args = ["install", *(str(requirement) for requirement in requirements)]
        if reinstall:
            args.append("--reinstall")
        if upgrade:
            args.append("--upgrade")
        self._run_pip(environment, *args)
        return environment.reused()

    def _run_pip(self, environment: ToolEnvironment, *args: str) -> None:
        cmd = uv_command(self._settings, "pip", *args, "--python", str(environment.python), "--quiet")
        try:
            self._runner(cmd, capture_output=True, env=uv_env(self._settings))
        except (FileNotFoundError, SubprocessExecutionError) as exc:
            raise SyncError(f"Failed to install packages for tool `{environment.name}`: {_detail(exc)}") from exc


def _interpreter_from_config(python: Path, config: dict[str, str]) -> Interpreter | None:
    raw = config.get("version_info") or config.get("version")
    if not raw:
        return None
    try:
        version = Version(raw)
    except InvalidVersion:
        return None
    implementation = config.get("implementation", "cpython").lower()
    return Interpreter(executable=python, version=version, implementation=implementation)


def _detail(exc: Exception) -> str:
    if isinstance(exc, SubprocessExecutionError) and exc.stderr:
        return exc.stderr.strip()
    return str(exc)


__all__ = ["UvEnvironmentManager", "read_pyvenv_cfg"]
