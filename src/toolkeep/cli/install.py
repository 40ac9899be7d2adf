# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Implementation of the `toolkeep install` command."""

from __future__ import annotations

from collections.abc import Callable

import typer

from ..entrypoints import EntryPointReconciler
from ..environments import UvEnvironmentManager
from ..errors import ResolutionError, ToolkeepError
from ..installer import InstallOutcome, ToolInstaller
from ..interpreters import InterpreterFinder, PythonFetch, PythonPreference
from ..logging import configure_verbose_logging, fail, info, ok, warn, warn_once
from ..models import tool_name
from ..receipts import InstalledTools
from ..resolver import UvRequirementResolver, parse_requirement
from ..settings import ToolkeepSettings, load_settings
from ._install_cli_models import (
    EXIT_ALREADY_INSTALLED,
    EXIT_ERROR,
    EXIT_SUCCESS,
    build_install_options,
)

EXPERIMENTAL_WARNING = "`toolkeep install` is experimental and may change without warning."


def build_installer(
    settings: ToolkeepSettings,
    tools: InstalledTools,
    *,
    warn: Callable[[str], None],
) -> ToolInstaller:
    """Wire the uv-backed collaborators into a :class:`ToolInstaller`."""

    finder = InterpreterFinder()
    return ToolInstaller(
        settings=settings,
        tools=tools,
        interpreters=finder,
        resolver=UvRequirementResolver(settings),
        environments=UvEnvironmentManager(settings, tools, finder),
        reconciler=EntryPointReconciler(),
        warn=warn,
    )


def _lock_name(package: str) -> str:
    """Return the normalized tool name guarding ``package``, else the raw value."""

    try:
        return tool_name(parse_requirement(package).name)
    except ResolutionError:
        return package


def install_command(
    package: str = typer.Argument(..., help="The package to install commands from."),
    from_spec: str | None = typer.Option(
        None,
        "--from",
        help="Install the tool from this requirement instead of PACKAGE.",
    ),
    with_specs: list[str] | None = typer.Option(
        None,
        "--with",
        "-w",
        help="Additional requirement to install into the tool environment (repeatable).",
    ),
    python: str | None = typer.Option(
        None,
        "--python",
        "-p",
        help="Python interpreter (version, executable name or path) for the tool environment.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite existing entry points, even when they belong to something else.",
    ),
    reinstall: bool = typer.Option(
        False,
        "--reinstall",
        help="Reinstall every package, even when the tool is already installed.",
    ),
    upgrade: bool = typer.Option(
        False,
        "--upgrade",
        "-U",
        help="Allow package upgrades, ignoring previously pinned versions.",
    ),
    python_preference: PythonPreference = typer.Option(
        PythonPreference.MANAGED,
        "--python-preference",
        case_sensitive=False,
        help="Whether to prefer uv-managed or system interpreters.",
    ),
    python_fetch: PythonFetch = typer.Option(
        PythonFetch.AUTOMATIC,
        "--python-fetch",
        case_sensitive=False,
        help="Whether missing managed interpreters may be downloaded.",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Disable network access; resolve from the local cache only.",
    ),
    emoji: bool = typer.Option(
        True,
        "--emoji/--no-emoji",
        help="Toggle emoji in CLI output.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Print debug messages to stderr.",
    ),
) -> None:
    """Install a tool into its own environment and expose its commands."""

    options = build_install_options(
        package=package,
        from_spec=from_spec,
        python=python,
        with_specs=with_specs,
        force=force,
        reinstall=reinstall,
        upgrade=upgrade,
        python_preference=python_preference,
        python_fetch=python_fetch,
        offline=offline,
        emoji=emoji,
        verbose=verbose,
    )
    use_emoji = options.display.emoji
    if options.display.verbose:
        configure_verbose_logging()

    settings = load_settings().with_offline(options.offline)
    if not settings.preview:
        warn_once(EXPERIMENTAL_WARNING, use_emoji=use_emoji)

    tools = InstalledTools(settings.tool_dir)
    installer = build_installer(settings, tools, warn=lambda message: warn(message, use_emoji=use_emoji))

    try:
        with tools.lock(_lock_name(options.package)):
            result = installer.install(options.to_request())
    except ToolkeepError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=EXIT_ERROR) from exc

    if result.outcome is InstallOutcome.ALREADY_INSTALLED:
        info(f"Tool `{result.tool}` is already installed", use_emoji=use_emoji)
        raise typer.Exit(code=EXIT_ALREADY_INSTALLED)

    ok(f"Installed: {', '.join(result.display_names)}", use_emoji=use_emoji)
    raise typer.Exit(code=EXIT_SUCCESS)


__all__ = ["build_installer", "install_command"]
