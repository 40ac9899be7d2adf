# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the subprocess wrapper used by the uv backends."""

from __future__ import annotations

import inspect
import sys

import pytest

from toolkeep.process_utils import SubprocessExecutionError, run_command


def test_run_command_captures_output() -> None:
    completed = run_command([sys.executable, "-c", "print('ok')"], capture_output=True)

    assert completed.returncode == 0
    assert completed.stdout.strip() == "ok"


def test_run_command_raises_on_failure() -> None:
    with pytest.raises(SubprocessExecutionError) as excinfo:
        run_command([sys.executable, "-c", "import sys; sys.exit(3)"], capture_output=True)

    assert excinfo.value.returncode == 3


def test_run_command_rejects_missing_executable() -> None:
    with pytest.raises(FileNotFoundError, match="was not found on PATH"):
        run_command(["toolkeep-definitely-missing-executable"])


def test_run_command_accepts_only_used_options() -> None:
    assert list(inspect.signature(run_command).parameters) == ["args", "env", "check", "capture_output", "text"]
