"""Version command."""

import click
from rich.console import Console

from ... import __version__

console = Console()


@click.command()
def version() -> None:
    """Show Statcrab version."""
    console.print(f"[bold]Statcrab[/bold] v{__version__}")
