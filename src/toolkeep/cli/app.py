# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands."""

from __future__ import annotations

from .install import install_command
from .typer_ext import create_typer

app = create_typer(
    name="toolkeep",
    help="Install Python command-line tools into isolated environments.",
    no_args_is_help=True,
    add_completion=False,
)
app.command("install")(install_command)


@app.callback()
def main() -> None:
    """Install Python command-line tools into isolated environments."""


__all__ = ["app"]
