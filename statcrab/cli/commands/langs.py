"""Langs command — weighted language ranking."""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ...config import StatcrabConfig
from ...errors import FetchError
from ...ranker import DEFAULT_MAX_LANGUAGES
from ..app import build_engine, exclude_repo_option, print_error

console = Console()


@click.command()
@click.argument("username")
@click.option("--max-languages", "-n", type=int, default=DEFAULT_MAX_LANGUAGES, help="Languages to show")
@click.option("--size-weight", type=float, default=0.5, help="Weight of code size")
@click.option("--count-weight", type=float, default=0.5, help="Weight of repository count")
@exclude_repo_option
@click.option("--json", "json_output", is_flag=True, help="JSON output format")
@click.pass_context
def langs(
    ctx: click.Context,
    username: str,
    max_languages: int,
    size_weight: float,
    count_weight: float,
    exclude_repo: tuple,
    json_output: bool,
) -> None:
    """Rank the languages a GitHub user writes.

    Examples:

        statcrab langs octocat

        statcrab langs octocat -n 5 --size-weight 1 --count-weight 0

        statcrab langs octocat -x dotfiles -x website
    """
    asyncio.run(_langs_async(
        settings=ctx.obj["settings"],
        username=username,
        max_languages=max_languages,
        size_weight=size_weight,
        count_weight=count_weight,
        exclude_repo=exclude_repo,
        json_output=json_output,
    ))


async def _langs_async(
    settings: StatcrabConfig,
    username: str,
    max_languages: int,
    size_weight: float,
    count_weight: float,
    exclude_repo: tuple,
    json_output: bool,
) -> None:
    engine = build_engine(settings)
    try:
        ranking = await engine.get_language_ranking(
            username,
            max_languages=max_languages,
            size_weight=size_weight,
            count_weight=count_weight,
            exclude_repo=exclude_repo,
        )

        if json_output:
            console.print_json(json.dumps([entry.to_dict() for entry in ranking]))
            return

        if not ranking:
            console.print(f"[yellow]No languages found for {username}[/yellow]")
            return

        table = Table(title=f"{username}'s Most Used Languages")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Language", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Bytes", justify="right")
        table.add_column("Repos", justify="right")
        for entry in ranking:
            table.add_row(
                str(entry.rank),
                Text.assemble(("\u25cf ", entry.color or "dim"), entry.name),
                f"{entry.score:.3f}",
                f"{entry.size_bytes:,}",
                str(entry.repo_count),
            )
        console.print(table)

    except FetchError as e:
        print_error(e, json_output)
        raise SystemExit(1)

    finally:
        await engine.close()
