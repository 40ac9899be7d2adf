# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the receipt store in :mod:`toolkeep.receipts`."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from fakes import FakeEnvironments, write_venv
from packaging.requirements import Requirement

from toolkeep.errors import ReceiptError
from toolkeep.models import EntryPoint, ToolReceipt
from toolkeep.receipts import RECEIPT_FILENAME, InstalledTools


def _receipt(tmp_path: Path, *requirements: str) -> ToolReceipt:
    entry = EntryPoint.from_source("black", tmp_path / "env" / "bin" / "black", tmp_path / "bin")
    return ToolReceipt.from_install(
        requirements=[Requirement(raw) for raw in requirements],
        python="3.12",
        entry_points=[entry],
    )


def test_missing_receipt_is_none(tmp_path: Path) -> None:
    assert InstalledTools(tmp_path / "tools").get_tool_receipt("black") is None


def test_receipt_is_written_as_json_beside_the_environment(tmp_path: Path) -> None:
    tools = InstalledTools(tmp_path / "tools").init()

    path = tools.add_tool_receipt("Black", _receipt(tmp_path, "black>=24", "black-plugin"))

    assert path == tmp_path / "tools" / "black" / RECEIPT_FILENAME
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["requirements"] == ["black>=24", "black-plugin"]
    assert payload["python"] == "3.12"
    assert payload["entrypoints"] == [{"name": "black", "install_path": str(tmp_path / "bin" / "black")}]
    assert tools.get_tool_receipt("black") == _receipt(tmp_path, "black>=24", "black-plugin")


def test_receipt_is_replaced_wholesale(tmp_path: Path) -> None:
    tools = InstalledTools(tmp_path / "tools")
    tools.add_tool_receipt("black", _receipt(tmp_path, "black", "black-plugin"))

    tools.add_tool_receipt("black", _receipt(tmp_path, "black"))

    receipt = tools.get_tool_receipt("black")
    assert receipt is not None
    assert receipt.requirements == ["black"]
    assert sorted(path.name for path in tools.tool_dir("black").iterdir()) == [RECEIPT_FILENAME]


def test_corrupt_receipt_raises(tmp_path: Path) -> None:
    tools = InstalledTools(tmp_path / "tools")
    path = tools.receipt_path("black")
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ReceiptError, match="Failed to read receipt for tool `black`"):
        tools.get_tool_receipt("black")


def test_receipt_matching_is_positional() -> None:
    receipt = ToolReceipt(requirements=["black", "flake8-bugbear", "flake8-docstrings"])

    assert receipt.matches([Requirement("black"), Requirement("flake8-bugbear"), Requirement("flake8-docstrings")])
    assert not receipt.matches([Requirement("black"), Requirement("flake8-docstrings"), Requirement("flake8-bugbear")])
    assert not receipt.matches([Requirement("black")])


def test_init_ignores_store_contents(tmp_path: Path) -> None:
    tools = InstalledTools(tmp_path / "tools")

    assert tools.init() is tools
    assert (tmp_path / "tools" / ".gitignore").read_text(encoding="utf-8") == "*\n"


def test_remove_environment(tmp_path: Path) -> None:
    tools = InstalledTools(tmp_path / "tools")
    assert tools.remove_environment("black") is False

    tools.add_tool_receipt("black", _receipt(tmp_path, "black"))
    (tools.tool_dir("black") / "bin").mkdir()

    assert tools.remove_environment("black") is True
    assert not tools.tool_dir("black").exists()
    assert tools.get_tool_receipt("black") is None


def test_lock_can_be_taken_repeatedly(tmp_path: Path) -> None:
    tools = InstalledTools(tmp_path / "tools")

    with tools.lock("Black"):
        tools.add_tool_receipt("black", _receipt(tmp_path, "black"))
    with tools.lock("black"):
        assert tools.get_tool_receipt("black") is not None


def test_get_environment_delegates_to_loader(tmp_path: Path) -> None:
    tools = InstalledTools(tmp_path / "tools")
    environments = FakeEnvironments(tools=tools)
    assert tools.get_environment("Black", environments) is None

    write_venv(tools.tool_dir("black"), "3.11.9")

    environment = tools.get_environment("Black", environments)
    assert environment is not None
    assert environment.root == tools.tool_dir("black")
    assert environment.fresh is False
