"""Command registration utilities for the vidcat CLI."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from vidcat.cli.commands import videos
from vidcat.cli.commands.videos import CatalogServices, ServiceFactory


def register_commands(
    app: typer.Typer,
    console: Console,
    *,
    service_factory: Optional[ServiceFactory] = None,
) -> None:
    """Attach command groups to the provided Typer application."""

    videos.register(app, console, service_factory=service_factory)

    @app.callback(invoke_without_command=True)
    def main_callback(ctx: typer.Context) -> None:
        """Manage the video catalog."""

        if ctx.invoked_subcommand is None:
            console.print("[bold green]vidcat ready for commands.[/bold green]")


__all__ = ["CatalogServices", "ServiceFactory", "register_commands"]
