# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command construction shared by the uv-backed resolver and environment manager."""

from __future__ import annotations

import os
from collections.abc import Mapping

from .settings import ToolkeepSettings


def uv_env(settings: ToolkeepSettings, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the process environment for uv invocations."""

    env = os.environ.copy()
    if settings.uv_cache_dir is not None:
        env["UV_CACHE_DIR"] = str(settings.uv_cache_dir)
    env.pop("VIRTUAL_ENV", None)
    if overrides:
        env.update(overrides)
    return env


def uv_command(settings: ToolkeepSettings, *args: str) -> list[str]:
    """Return ``uv <args>`` with global flags derived from ``settings``."""

    cmd = ["uv", *args]
    if settings.offline:
        cmd.append("--offline")
    return cmd


__all__ = ["uv_command", "uv_env"]
