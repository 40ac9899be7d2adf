# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for interpreter requests and discovery."""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

import pytest
from packaging.specifiers import SpecifierSet
from packaging.version import Version

from toolkeep.errors import InterpreterNotFoundError
from toolkeep.interpreters import InterpreterFinder, PythonFetch, PythonPreference, PythonRequest, RequestKind
from toolkeep.models import Interpreter
from toolkeep.process_utils import SubprocessExecutionError


class FakeRunner:
    """Answer probe and ``uv python`` invocations from canned tables."""

    def __init__(self, versions: dict[str, str], *, managed: str | None = None, installable: bool = True) -> None:
        self.versions = versions
        self.managed = managed
        self.installable = installable
        self.calls: list[list[str]] = []

    def __call__(self, args: Sequence[str], **_: object) -> subprocess.CompletedProcess[str]:
        cmd = list(args)
        self.calls.append(cmd)
        if cmd[:3] == ["uv", "python", "find"]:
            if self.managed is None:
                raise SubprocessExecutionError(cmd, 2, "", "error: No interpreter found")
            return subprocess.CompletedProcess(cmd, 0, f"{self.managed}\n", "")
        if cmd[:3] == ["uv", "python", "install"]:
            if not self.installable:
                raise SubprocessExecutionError(cmd, 2, "", "error: download failed")
            self.managed = "/managed/python3.11"
            self.versions[self.managed] = "3.11.9 cpython"
            return subprocess.CompletedProcess(cmd, 0, "", "")
        if cmd[0] in self.versions:
            return subprocess.CompletedProcess(cmd, 0, f"{self.versions[cmd[0]]}\n", "")
        raise FileNotFoundError(cmd[0])


@pytest.fixture
def fake_path(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    located: dict[str, str] = {}
    monkeypatch.setattr("toolkeep.interpreters.shutil.which", located.get)
    monkeypatch.setattr(sys, "executable", "")
    return located


@pytest.mark.parametrize(
    ("raw", "kind", "specifier"),
    [
        ("3.12", RequestKind.VERSION, "==3.12.*"),
        ("3.12.1", RequestKind.VERSION, "==3.12.1"),
        (">=3.10,<3.13", RequestKind.VERSION, ">=3.10,<3.13"),
        ("python3.11", RequestKind.EXECUTABLE, "==3.11.*"),
        ("pypy", RequestKind.EXECUTABLE, None),
        ("./venv/bin/python", RequestKind.PATH, None),
    ],
)
def test_python_request_parse(raw: str, kind: RequestKind, specifier: str | None) -> None:
    request = PythonRequest.parse(raw)

    assert request.kind is kind
    assert request.specifier == (SpecifierSet(specifier) if specifier else None)
    assert str(request) == raw


def test_version_request_satisfaction() -> None:
    request = PythonRequest.parse("3.12")

    assert request.satisfied(Interpreter(executable=Path("/usr/bin/python3"), version=Version("3.12.4")))
    assert not request.satisfied(Interpreter(executable=Path("/usr/bin/python3"), version=Version("3.11.9")))


def test_path_request_satisfaction(tmp_path: Path) -> None:
    python = tmp_path / "python"
    python.write_text("", encoding="utf-8")
    request = PythonRequest.parse(str(python))

    assert request.kind is RequestKind.PATH
    assert request.satisfied(Interpreter(executable=python, version=Version("3.12.1")))
    assert not request.satisfied(Interpreter(executable=tmp_path / "other", version=Version("3.12.1")))


def test_probe_caches_per_executable() -> None:
    runner = FakeRunner({"/usr/bin/python3": "3.12.1 cpython"})
    finder = InterpreterFinder(runner=runner)

    first = finder.probe(Path("/usr/bin/python3"))
    second = finder.probe(Path("/usr/bin/python3"))

    assert first == Interpreter(executable=Path("/usr/bin/python3"), version=Version("3.12.1"))
    assert second is first
    assert len(runner.calls) == 1


def test_probe_failure_is_none() -> None:
    finder = InterpreterFinder(runner=FakeRunner({}))

    assert finder.probe(Path("/nowhere/python")) is None


def test_system_interpreter_matching_request(fake_path: dict[str, str]) -> None:
    fake_path.update({"python3": "/usr/bin/python3", "python3.11": "/usr/bin/python3.11"})
    runner = FakeRunner({"/usr/bin/python3": "3.12.1 cpython", "/usr/bin/python3.11": "3.11.9 cpython"})
    finder = InterpreterFinder(runner=runner)

    found = finder.find_or_fetch(PythonRequest.parse("3.11"), preference=PythonPreference.ONLY_SYSTEM)

    assert found.executable == Path("/usr/bin/python3.11")
    assert found.version == Version("3.11.9")


def test_system_lookup_without_match_raises(fake_path: dict[str, str]) -> None:
    fake_path["python3"] = "/usr/bin/python3"
    finder = InterpreterFinder(runner=FakeRunner({"/usr/bin/python3": "3.12.1 cpython"}))

    with pytest.raises(InterpreterNotFoundError, match="No interpreter found matching `3.10`"):
        finder.find_or_fetch(PythonRequest.parse("3.10"), preference=PythonPreference.ONLY_SYSTEM)


def test_managed_interpreter_is_fetched_when_missing(fake_path: dict[str, str]) -> None:
    fake_path["uv"] = "/usr/bin/uv"
    runner = FakeRunner({})
    finder = InterpreterFinder(runner=runner)

    found = finder.find_or_fetch(PythonRequest.parse("3.11"), preference=PythonPreference.ONLY_MANAGED)

    assert found.executable == Path("/managed/python3.11")
    assert ["uv", "python", "install", "3.11"] in runner.calls


@pytest.mark.parametrize(("fetch", "offline"), [(PythonFetch.MANUAL, False), (PythonFetch.AUTOMATIC, True)])
def test_managed_interpreter_is_not_fetched(fake_path: dict[str, str], fetch: PythonFetch, offline: bool) -> None:
    fake_path["uv"] = "/usr/bin/uv"
    runner = FakeRunner({})
    finder = InterpreterFinder(runner=runner)

    with pytest.raises(InterpreterNotFoundError):
        finder.find_or_fetch(
            PythonRequest.parse("3.11"),
            preference=PythonPreference.ONLY_MANAGED,
            fetch=fetch,
            offline=offline,
        )

    assert not any(call[:3] == ["uv", "python", "install"] for call in runner.calls)


def test_managed_preference_falls_back_to_system(fake_path: dict[str, str]) -> None:
    fake_path["python3"] = "/usr/bin/python3"
    finder = InterpreterFinder(runner=FakeRunner({"/usr/bin/python3": "3.12.1 cpython"}))

    found = finder.find_or_fetch(None, preference=PythonPreference.MANAGED)

    assert found.executable == Path("/usr/bin/python3")
