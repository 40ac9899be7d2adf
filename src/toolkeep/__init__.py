# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Install Python command-line tools into isolated, reusable environments."""

from __future__ import annotations

from .entrypoints import EntryPointReconciler
from .errors import (
    EntryPointConflictError,
    InterpreterNotFoundError,
    NameConflictError,
    NoEntryPointsError,
    PublishError,
    ReceiptError,
    ResolutionError,
    SyncError,
    ToolkeepError,
)
from .installer import InstallOutcome, InstallRequest, InstallResult, ToolInstaller
from .models import EntryPoint, ToolEntryPoint, ToolEnvironment, ToolReceipt
from .receipts import InstalledTools
from .settings import ToolkeepSettings, load_settings

__version__ = "0.1.0"

__all__ = [
    "EntryPoint",
    "EntryPointConflictError",
    "EntryPointReconciler",
    "InstallOutcome",
    "InstallRequest",
    "InstallResult",
    "InstalledTools",
    "InterpreterNotFoundError",
    "NameConflictError",
    "NoEntryPointsError",
    "PublishError",
    "ReceiptError",
    "ResolutionError",
    "SyncError",
    "ToolEntryPoint",
    "ToolEnvironment",
    "ToolInstaller",
    "ToolReceipt",
    "ToolkeepError",
    "ToolkeepSettings",
    "__version__",
    "load_settings",
]
