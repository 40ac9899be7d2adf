# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Data models shared by the installer, receipts and entry point reconciliation."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from packaging.requirements import Requirement
from packaging.utils import NormalizedName, canonicalize_name
from packaging.version import Version
from pydantic import BaseModel, ConfigDict, Field

WINDOWS = os.name == "nt"


def tool_name(raw: str) -> NormalizedName:
    """Return the normalized package identifier used to key tool state."""

    return canonicalize_name(raw)


def venv_python(root: Path) -> Path:
    """Return the interpreter path inside the virtual environment at ``root``."""

    if WINDOWS:
        return root / "Scripts" / "python.exe"
    return root / "bin" / "python"


@dataclass(frozen=True, slots=True)
class Interpreter:
    """A concrete Python executable and the version it reports."""

    executable: Path
    version: Version
    implementation: str = "cpython"

    def __str__(self) -> str:
        return f"{self.implementation} {self.version} ({self.executable})"


@dataclass(frozen=True, slots=True)
class Resolution:
    """Pinned requirements produced by a full solve, ready to sync."""

    pins: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ToolEnvironment:
    """Virtual environment owned by a single tool.

    ``fresh`` is ``True`` only when the environment was created during the
    current install call, which is what decides whether a failed install may
    delete it.
    """

    name: NormalizedName
    root: Path
    interpreter: Interpreter
    fresh: bool = False

    @property
    def scripts_dir(self) -> Path:
        """Return the directory where installers place console scripts."""

        return self.root / ("Scripts" if WINDOWS else "bin")

    @property
    def python(self) -> Path:
        """Return the environment's own interpreter executable."""

        return venv_python(self.root)

    def site_packages(self) -> tuple[Path, ...]:
        """Return the purelib directories present in the environment."""

        if WINDOWS:
            candidate = self.root / "Lib" / "site-packages"
            return (candidate,) if candidate.is_dir() else ()
        return tuple(sorted(path for path in (self.root / "lib").glob("python*/site-packages") if path.is_dir()))

    def reused(self) -> ToolEnvironment:
        """Return this environment tagged as pre-existing."""

        return replace(self, fresh=False)


@dataclass(frozen=True, order=True, slots=True)
class EntryPoint:
    """An executable exposed by a tool and where it is published.

    Instances order by ``(name, source_path, target_path)`` so that a sorted set
    of entry points yields the same install and reporting order on every run.
    """

    name: str
    source_path: Path
    target_path: Path

    @classmethod
    def from_source(cls, name: str, source_path: Path, executable_directory: Path) -> EntryPoint:
        """Derive the published target from the source filename, else ``name``."""

        filename = source_path.name or name
        return cls(name=name, source_path=source_path, target_path=executable_directory / filename)


def ordered_entry_points(entry_points: Iterable[EntryPoint]) -> tuple[EntryPoint, ...]:
    """Deduplicate and sort ``entry_points`` into their total order."""

    return tuple(sorted(set(entry_points)))


class ToolEntryPoint(BaseModel):
    """Receipt record for a published executable."""

    model_config = ConfigDict(frozen=True)

    name: str
    install_path: Path


class ToolReceipt(BaseModel):
    """Persisted record of what was last installed for a tool."""

    model_config = ConfigDict(frozen=True)

    requirements: list[str] = Field(default_factory=list)
    python: str | None = None
    entrypoints: list[ToolEntryPoint] = Field(default_factory=list)

    @classmethod
    def from_install(
        cls,
        *,
        requirements: Sequence[Requirement],
        python: str | None,
        entry_points: Iterable[EntryPoint],
    ) -> ToolReceipt:
        """Build the receipt committed at the end of a successful install."""

        return cls(
            requirements=[str(requirement) for requirement in requirements],
            python=python,
            entrypoints=[
                ToolEntryPoint(name=entry.name, install_path=entry.target_path)
                for entry in ordered_entry_points(entry_points)
            ],
        )

    def parsed_requirements(self) -> list[Requirement]:
        """Return the recorded requirement set in its original order."""

        return [Requirement(raw) for raw in self.requirements]

    def matches(self, requirements: Sequence[Requirement]) -> bool:
        """Return ``True`` when ``requirements`` equals the recorded set positionally."""

        return self.parsed_requirements() == list(requirements)


__all__ = [
    "EntryPoint",
    "Interpreter",
    "Resolution",
    "ToolEntryPoint",
    "ToolEnvironment",
    "ToolReceipt",
    "ordered_entry_points",
    "tool_name",
    "venv_python",
]
