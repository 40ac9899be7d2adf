# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Discover, reconcile and publish a tool's executables.

Targets in the shared executable directory are namespaced only by filename, so
an existing file is treated as ours to overwrite only when the tool already had
a receipt (or the caller forces it). File contents are never inspected.
"""

from __future__ import annotations

import csv
import logging
import os
import shutil
import uuid
from collections.abc import Iterable
from email.parser import HeaderParser
from functools import cache
from pathlib import Path
from typing import Protocol

from packaging.utils import canonicalize_name

from .errors import EntryPointConflictError, PublishError
from .models import EntryPoint, ToolEnvironment, ordered_entry_points

LOGGER = logging.getLogger(__name__)


def find_dist_info(environment: ToolEnvironment, package_name: str) -> Path | None:
    """Return the ``.dist-info`` directory of ``package_name`` in ``environment``."""

    wanted = canonicalize_name(package_name)
    for site_packages in environment.site_packages():
        for candidate in sorted(site_packages.glob("*.dist-info")):
            metadata = candidate / "METADATA"
            if not metadata.is_file():
                continue
            headers = HeaderParser().parsestr(metadata.read_text(encoding="utf-8", errors="replace"))
            name = headers.get("Name")
            if name and canonicalize_name(name) == wanted:
                return candidate
    return None


def entrypoint_paths(environment: ToolEnvironment, package_name: str) -> list[tuple[str, Path]]:
    """Return ``(name, source_path)`` for every script ``package_name`` installed.

    Scripts are the ``RECORD`` entries that land in the environment's scripts
    directory; the name is the path relative to that directory.
    """

    dist_info = find_dist_info(environment, package_name)
    if dist_info is None:
        LOGGER.debug("No installed distribution found for `%s`", package_name)
        return []
    record = dist_info / "RECORD"
    if not record.is_file():
        return []

    site_packages = dist_info.parent
    scripts = Path(os.path.normpath(environment.scripts_dir))
    found: list[tuple[str, Path]] = []
    with record.open(encoding="utf-8", newline="") as handle:
        for row in csv.reader(handle):
            if not row:
                continue
            absolute = Path(os.path.normpath(site_packages / row[0]))
            try:
                relative = absolute.relative_to(scripts)
            except ValueError:
                continue
            found.append((relative.as_posix(), absolute))
    return found


class EntryPointPublisher(Protocol):
    """Strategy that places one executable at its published target."""

    def install(self, source: Path, target: Path) -> None: ...


def _staging_path(target: Path) -> Path:
    return target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")


class SymlinkPublisher:
    """Atomically point ``target`` at ``source`` with a staged symlink swap."""

    def install(self, source: Path, target: Path) -> None:
        staged = _staging_path(target)
        try:
            os.symlink(source, staged)
            os.replace(staged, target)
        except OSError as exc:
            staged.unlink(missing_ok=True)
            raise PublishError("Failed to install entrypoint", path=target) from exc


class CopyPublisher:
    """Copy ``source`` over ``target`` for platforms without symlinks.

    Updates to the environment do not propagate until the tool is reinstalled.
    """

    def install(self, source: Path, target: Path) -> None:
        staged = _staging_path(target)
        try:
            shutil.copy2(source, staged)
            os.replace(staged, target)
        except OSError as exc:
            staged.unlink(missing_ok=True)
            raise PublishError("Failed to install entrypoint", path=target) from exc


@cache
def default_publisher() -> EntryPointPublisher:
    """Return the publisher supported by this platform, chosen once per process."""

    if os.name != "nt" and hasattr(os, "symlink"):
        return SymlinkPublisher()
    return CopyPublisher()


class EntryPointReconciler:
    """Compare desired entry points with the executable directory and publish them."""

    def __init__(self, publisher: EntryPointPublisher | None = None) -> None:
        self._publisher = publisher or default_publisher()

    @staticmethod
    def targets(
        discovered: Iterable[tuple[str, Path]],
        executable_directory: Path,
    ) -> tuple[EntryPoint, ...]:
        """Map discovered scripts onto the executable directory in total order."""

        return ordered_entry_points(
            EntryPoint.from_source(name, source, executable_directory) for name, source in discovered
        )

    def reconcile(
        self,
        entry_points: Iterable[EntryPoint],
        *,
        reinstall_entry_points: bool,
        force: bool,
    ) -> tuple[EntryPoint, ...]:
        """Clear the way for ``entry_points`` or refuse to clobber foreign files.

        Args:
            entry_points: Candidate entry points for the tool.
            reinstall_entry_points: ``True`` when the tool had a receipt before
                this install, so existing targets are its own.
            force: ``True`` when the caller consented to overwriting.

        Returns:
            tuple[EntryPoint, ...]: Entry points whose existing targets were removed.

        Raises:
            EntryPointConflictError: When targets exist and neither flag is set.
            PublishError: When an existing target cannot be removed.
        """

        existing = tuple(entry for entry in ordered_entry_points(entry_points) if os.path.lexists(entry.target_path))
        if not existing:
            return ()
        if not (force or reinstall_entry_points):
            raise EntryPointConflictError([entry.target_path.name for entry in existing])
        for entry in existing:
            LOGGER.debug("Removing existing entry point `%s`", entry.name)
            try:
                entry.target_path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise PublishError("Failed to remove existing entrypoint", path=entry.target_path) from exc
        return existing

    def publish(self, entry_points: Iterable[EntryPoint]) -> tuple[EntryPoint, ...]:
        """Install every entry point in total order and return them."""

        ordered = ordered_entry_points(entry_points)
        for entry in ordered:
            LOGGER.debug("Installing `%s`", entry.name)
            self._publisher.install(entry.source_path, entry.target_path)
        return ordered


__all__ = [
    "CopyPublisher",
    "EntryPointPublisher",
    "EntryPointReconciler",
    "SymlinkPublisher",
    "default_publisher",
    "entrypoint_paths",
    "find_dist_info",
]
