# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures wiring the installer to on-disk fakes."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import DEFAULT_VERSION, FakeEnvironments, FakeInterpreters, FakeResolver
from packaging.version import Version

from toolkeep.installer import ToolInstaller
from toolkeep.models import Interpreter
from toolkeep.receipts import InstalledTools
from toolkeep.settings import ToolkeepSettings



@pytest.fixture
def settings(tmp_path: Path) -> ToolkeepSettings:
    return ToolkeepSettings(tool_dir=tmp_path / "tools", bin_dir=tmp_path / "bin")


@pytest.fixture
def tools(settings: ToolkeepSettings) -> InstalledTools:
    return InstalledTools(settings.tool_dir)


@pytest.fixture
def interpreters(tmp_path: Path) -> FakeInterpreters:
    return FakeInterpreters(Interpreter(executable=tmp_path / "python3.12", version=Version(DEFAULT_VERSION)))


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def environments(tools: InstalledTools) -> FakeEnvironments:
    return FakeEnvironments(tools=tools, index={"black": ["black", "blackd"], "black-plugin": []})


@pytest.fixture
def warnings() -> list[str]:
    return []


@pytest.fixture
def installer(
    settings: ToolkeepSettings,
    tools: InstalledTools,
    interpreters: FakeInterpreters,
    resolver: FakeResolver,
    environments: FakeEnvironments,
    warnings: list[str],
) -> ToolInstaller:
    return ToolInstaller(
        settings=settings,
        tools=tools,
        interpreters=interpreters,
        resolver=resolver,
        environments=environments,
        warn=warnings.append,
    )
