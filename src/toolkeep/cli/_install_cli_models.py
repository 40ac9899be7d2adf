# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Data structures for the install CLI command."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from ..installer import InstallRequest
from ..interpreters import PythonFetch, PythonPreference

EXIT_SUCCESS: Final[int] = 0
EXIT_ALREADY_INSTALLED: Final[int] = 1
EXIT_ERROR: Final[int] = 2


@dataclass(slots=True)
class InstallDisplayOptions:
    """Console toggles for the install command."""

    emoji: bool
    verbose: bool


@dataclass(slots=True)
class InstallCLIOptions:
    """Normalised CLI inputs for ``toolkeep install``."""

    package: str
    from_spec: str | None
    python: str | None
    with_specs: tuple[str, ...]
    force: bool
    reinstall: bool
    upgrade: bool
    python_preference: PythonPreference
    python_fetch: PythonFetch
    offline: bool
    display: InstallDisplayOptions

    def to_request(self) -> InstallRequest:
        """Return the orchestrator request described by these options."""

        return InstallRequest(
            package=self.package,
            from_spec=self.from_spec,
            python=self.python,
            with_specs=self.with_specs,
            force=self.force,
            reinstall=self.reinstall,
            upgrade=self.upgrade,
            python_preference=self.python_preference,
            python_fetch=self.python_fetch,
        )


def build_install_options(
    *,
    package: str,
    from_spec: str | None,
    python: str | None,
    with_specs: Sequence[str] | None,
    force: bool,
    reinstall: bool,
    upgrade: bool,
    python_preference: PythonPreference,
    python_fetch: PythonFetch,
    offline: bool,
    emoji: bool,
    verbose: bool,
) -> InstallCLIOptions:
    """Construct :class:`InstallCLIOptions` from Typer parameters."""

    expanded = tuple(value.strip() for value in (with_specs or ()) if value.strip())
    return InstallCLIOptions(
        package=package.strip(),
        from_spec=from_spec.strip() if from_spec else None,
        python=python.strip() if python else None,
        with_specs=expanded,
        force=force,
        reinstall=reinstall,
        upgrade=upgrade,
        python_preference=python_preference,
        python_fetch=python_fetch,
        offline=offline,
        display=InstallDisplayOptions(emoji=emoji, verbose=verbose),
    )


__all__ = [
    "EXIT_ALREADY_INSTALLED",
    "EXIT_ERROR",
    "EXIT_SUCCESS",
    "InstallCLIOptions",
    "InstallDisplayOptions",
    "build_install_options",
]
