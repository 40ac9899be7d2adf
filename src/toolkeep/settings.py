# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve filesystem locations and toggles from the process environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict

from .errors import PublishError

LOGGER = logging.getLogger(__name__)

TOOL_DIR_ENV: Final[str] = "TOOLKEEP_TOOL_DIR"
BIN_DIR_ENV: Final[str] = "TOOLKEEP_BIN_DIR"
OFFLINE_ENV: Final[str] = "TOOLKEEP_OFFLINE"
PREVIEW_ENV: Final[str] = "TOOLKEEP_PREVIEW"
UV_CACHE_ENV: Final[str] = "UV_CACHE_DIR"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


class ToolkeepSettings(BaseModel):
    """Locations and switches shared by every install invocation."""

    model_config = ConfigDict(frozen=True)

    tool_dir: Path
    bin_dir: Path
    uv_cache_dir: Path | None = None
    offline: bool = False
    preview: bool = False

    def with_offline(self, offline: bool) -> ToolkeepSettings:
        """Return a copy with ``offline`` forced on when requested."""

        if not offline or self.offline:
            return self
        return self.model_copy(update={"offline": True})


def _flag(environ: Mapping[str, str], key: str) -> bool:
    return environ.get(key, "").strip().lower() in _TRUTHY


def _data_home(environ: Mapping[str, str]) -> Path:
    raw = environ.get("XDG_DATA_HOME")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".local" / "share"


def default_tool_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the directory holding per-tool environments and receipts."""

    environ = os.environ if environ is None else environ
    override = environ.get(TOOL_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return _data_home(environ) / "toolkeep" / "tools"


def default_bin_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the shared directory that receives tool executables.

    The lookup order follows the XDG conventions: an explicit override,
    ``XDG_BIN_HOME``, the ``bin`` sibling of ``XDG_DATA_HOME`` and finally
    ``~/.local/bin``.
    """

    environ = os.environ if environ is None else environ
    override = environ.get(BIN_DIR_ENV)
    if override:
        return Path(override).expanduser()
    xdg_bin = environ.get("XDG_BIN_HOME")
    if xdg_bin:
        return Path(xdg_bin).expanduser()
    xdg_data = environ.get("XDG_DATA_HOME")
    if xdg_data:
        return (Path(xdg_data).expanduser() / ".." / "bin").resolve()
    return Path.home() / ".local" / "bin"


def load_settings(environ: Mapping[str, str] | None = None) -> ToolkeepSettings:
    """Build :class:`ToolkeepSettings` from ``environ`` (defaults to ``os.environ``)."""

    environ = os.environ if environ is None else environ
    cache_raw = environ.get(UV_CACHE_ENV)
    settings = ToolkeepSettings(
        tool_dir=default_tool_dir(environ),
        bin_dir=default_bin_dir(environ),
        uv_cache_dir=Path(cache_raw).expanduser() if cache_raw else None,
        offline=_flag(environ, OFFLINE_ENV),
        preview=_flag(environ, PREVIEW_ENV),
    )
    LOGGER.debug("Resolved settings: %s", settings)
    return settings


def find_executable_directory(settings: ToolkeepSettings) -> Path:
    """Return the executable directory, creating it on demand.

    Concurrent installs may race on creation; an existing directory is success.
    """

    directory = settings.bin_dir
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PublishError("Failed to create executable directory", path=directory) from exc
    return directory


__all__ = [
    "BIN_DIR_ENV",
    "OFFLINE_ENV",
    "PREVIEW_ENV",
    "TOOL_DIR_ENV",
    "ToolkeepSettings",
    "default_bin_dir",
    "default_tool_dir",
    "find_executable_directory",
    "load_settings",
]
