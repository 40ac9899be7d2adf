# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""On-disk store for tool environments and their install receipts.

Each tool owns ``<tool_dir>/<name>/``: the virtual environment lives at that
root and ``receipt.json`` sits beside ``pyvenv.cfg``. Removing a tool's
environment therefore removes its receipt too.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Final, Protocol

from packaging.utils import NormalizedName
from pydantic import ValidationError

from .errors import ReceiptError
from .models import ToolEnvironment, ToolReceipt, tool_name

if sys.platform != "win32":
    import fcntl

LOGGER = logging.getLogger(__name__)

RECEIPT_FILENAME: Final[str] = "receipt.json"
GITIGNORE_FILENAME: Final[str] = ".gitignore"
LOCK_SUFFIX: Final[str] = ".lock"


def _slugify(value: str) -> str:
    """Return a filesystem-friendly slug for *value*."""
    return re.sub(r"[^A-Za-z0-9_.-]+", "-", value)


class EnvironmentLoader(Protocol):
    def load(self, name: NormalizedName) -> ToolEnvironment | None: ...


class InstalledTools:
    """Receipt store keyed by normalized tool name."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def tool_dir(self, name: str) -> Path:
        """Return the directory owned by tool ``name``."""

        return self._root / tool_name(name)

    def receipt_path(self, name: str) -> Path:
        return self.tool_dir(name) / RECEIPT_FILENAME

    def init(self) -> InstalledTools:
        """Create the store root, ignoring its contents for version control."""

        self._root.mkdir(parents=True, exist_ok=True)
        gitignore = self._root / GITIGNORE_FILENAME
        if not gitignore.exists():
            gitignore.write_text("*\n", encoding="utf-8")
        return self

    def get_tool_receipt(self, name: str) -> ToolReceipt | None:
        """Return the stored receipt for ``name`` or ``None`` when absent.

        Raises:
            ReceiptError: When a receipt exists but cannot be parsed.
        """

        path = self.receipt_path(name)
        if not path.is_file():
            return None
        try:
            return ToolReceipt.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            raise ReceiptError(f"Failed to read receipt for tool `{name}` at {path}: {exc}") from exc

    def get_environment(self, name: str, environments: EnvironmentLoader) -> ToolEnvironment | None:
        """Return the environment stored for ``name``, loaded by ``environments``."""

        return environments.load(tool_name(name))

    def add_tool_receipt(self, name: str, receipt: ToolReceipt) -> Path:
        """Replace the receipt for ``name`` wholesale.

        The new content is staged in a sibling temporary file and moved into
        place with :func:`os.replace`, so readers see either the old or the new
        receipt.
        """

        path = self.receipt_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = receipt.model_dump_json(indent=2)
        fd, staged = tempfile.mkstemp(prefix=".receipt-", suffix=".json", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.write("\n")
            os.replace(staged, path)
        except OSError as exc:
            Path(staged).unlink(missing_ok=True)
            raise ReceiptError(f"Failed to write receipt for tool `{name}` at {path}: {exc}") from exc
        LOGGER.debug("Wrote receipt for tool `%s` to %s", name, path)
        return path

    def remove_environment(self, name: str) -> bool:
        """Delete the environment (and receipt) for ``name``.

        Safe to call for tools that were never fully installed.

        Returns:
            bool: ``True`` when something was removed.
        """

        directory = self.tool_dir(name)
        if not directory.exists() and not directory.is_symlink():
            return False
        LOGGER.debug("Removing environment for tool `%s` at %s", name, directory)
        if directory.is_dir() and not directory.is_symlink():
            shutil.rmtree(directory)
        else:
            directory.unlink()
        return True

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        """Hold an exclusive per-tool lock for the duration of the block.

        On platforms without ``fcntl`` the block runs unlocked.
        """

        self._root.mkdir(parents=True, exist_ok=True)
        if sys.platform == "win32":
            yield
            return
        lock_path = self._root / f"{_slugify(tool_name(name))}{LOCK_SUFFIX}"
        with lock_path.open("a+", encoding="utf-8") as handle:
            LOGGER.debug("Acquiring lock %s", lock_path)
            fcntl.flock(handle, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle, fcntl.LOCK_UN)


__all__ = ["EnvironmentLoader", "GITIGNORE_FILENAME", "InstalledTools", "RECEIPT_FILENAME"]
