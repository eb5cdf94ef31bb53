"""Command-line interface package for vidcat."""

from rich.console import Console

from vidcat.cli.main import CLIApplication, create_app

console = Console()

__all__ = ["CLIApplication", "console", "create_app"]
