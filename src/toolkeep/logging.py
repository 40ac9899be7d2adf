# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour and emoji support."""

from __future__ import annotations

import logging
import sys

from rich.markup import escape

from .console import console_manager

_WARNED: set[str] = set()
_VERBOSE_FLAG = "_toolkeep_verbose_configured"


def _emit(msg: str, *, style: str | None, symbol: str, use_emoji: bool) -> None:
    console = console_manager().get(color=True, emoji=use_emoji)
    prefix = f"{symbol} " if use_emoji else ""
    text = escape(msg)
    if style:
        text = f"[{style}]{text}[/{style}]"
    console.print(f"{prefix}{text}")


def info(msg: str, *, use_emoji: bool) -> None:
    """Emit an informational message."""

    _emit(msg, style=None, symbol="ℹ️ ", use_emoji=use_emoji)


def ok(msg: str, *, use_emoji: bool) -> None:
    """Emit a success message."""

    _emit(msg, style="green", symbol="✅", use_emoji=use_emoji)


def warn(msg: str, *, use_emoji: bool) -> None:
    """Emit a warning message."""

    _emit(msg, style="yellow", symbol="⚠️ ", use_emoji=use_emoji)


def warn_once(msg: str, *, use_emoji: bool) -> None:
    """Emit ``msg`` as a warning the first time it is seen in this process."""

    if msg in _WARNED:
        return
    _WARNED.add(msg)
    warn(msg, use_emoji=use_emoji)


def fail(msg: str, *, use_emoji: bool) -> None:
    """Emit an error message."""

    _emit(msg, style="red", symbol="❌", use_emoji=use_emoji)


def configure_verbose_logging() -> None:
    """Stream ``toolkeep`` debug records to stderr."""

    logger = logging.getLogger("toolkeep")
    if getattr(logger, _VERBOSE_FLAG, False):
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("DEBUG %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    setattr(logger, _VERBOSE_FLAG, True)


__all__ = ["configure_verbose_logging", "fail", "info", "ok", "warn", "warn_once"]
