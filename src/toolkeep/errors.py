# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy raised while installing tools."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ToolkeepError(Exception):
    """Base class for every failure surfaced to toolkeep callers."""


class NameConflictError(ToolkeepError):
    """Raised when the ``--from`` source names a different package than requested."""

    def __init__(self, message: str, *, package: str, source: str) -> None:
        super().__init__(message)
        self.package = package
        self.source = source


class ReceiptError(ToolkeepError):
    """Raised when a stored receipt cannot be read or written."""


class InterpreterNotFoundError(ToolkeepError):
    """Raised when no interpreter satisfies the requested Python version."""


class ResolutionError(ToolkeepError):
    """Raised when requirements cannot be parsed or solved."""


class SyncError(ToolkeepError):
    """Raised when an environment cannot be created or populated."""


class NoEntryPointsError(ToolkeepError):
    """Raised when the installed package exposes no executables."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"No entry points found for tool `{tool_name}`")
        self.tool_name = tool_name


class EntryPointConflictError(ToolkeepError):
    """Raised when entry point targets already exist and may belong to another tool."""

    def __init__(self, conflicts: Sequence[str]) -> None:
        self.conflicts = tuple(conflicts)
        if len(self.conflicts) == 1:
            prefix = "Entry point for tool already exists"
        else:
            prefix = "Entry points for tool already exist"
        super().__init__(f"{prefix}: {', '.join(self.conflicts)} (use `--force` to overwrite)")


class PublishError(ToolkeepError):
    """Raised when an entry point cannot be written into the executable directory."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


__all__ = [
    "EntryPointConflictError",
    "InterpreterNotFoundError",
    "NameConflictError",
    "NoEntryPointsError",
    "PublishError",
    "ReceiptError",
    "ResolutionError",
    "SyncError",
    "ToolkeepError",
]
