"""Themes command."""

import click
from rich.console import Console

from ...themes import DEFAULT_THEME, Theme

console = Console()


@click.command()
def themes() -> None:
    """List available card themes."""
    for theme in Theme:
        marker = " [dim](default)[/dim]" if theme.value == DEFAULT_THEME else ""
        console.print(f"{theme.value}{marker}")
