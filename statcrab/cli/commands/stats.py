"""Stats command — aggregate activity statistics."""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from ...engine import validate_hide
from ...config import StatcrabConfig
from ...errors import FetchError
from ..app import build_engine, exclude_repo_option, print_error

console = Console()

LABELS = {
    "stars_count": "Total Stars",
    "commits_ytd_count": "Commits (this year)",
    "issues_count": "Issues",
    "pull_requests_count": "Pull Requests",
    "merge_requests_count": "Merged Pull Requests",
    "reviews_count": "Reviews",
    "started_discussions_count": "Discussions Started",
    "answered_discussions_count": "Discussions Answered",
}


@click.command()
@click.argument("username")
@click.option("--hide", default="", help="Comma-separated statistics to hide")
@exclude_repo_option
@click.option("--json", "json_output", is_flag=True, help="JSON output format")
@click.pass_context
def stats(ctx: click.Context, username: str, hide: str, exclude_repo: tuple, json_output: bool) -> None:
    """Show activity statistics for a GitHub user.

    Examples:

        statcrab stats octocat

        statcrab stats octocat --hide reviews_count,issues_count

        statcrab stats octocat --json | jq .stars_count
    """
    hide_names = [h.strip() for h in hide.split(",") if h.strip()]
    asyncio.run(_stats_async(ctx.obj["settings"], username, hide_names, exclude_repo, json_output))


async def _stats_async(
    settings: StatcrabConfig,
    username: str,
    hide: list,
    exclude_repo: tuple,
    json_output: bool,
) -> None:
    engine = build_engine(settings)
    try:
        result = await engine.get_user_stats(username, hide=hide, exclude_repo=exclude_repo)
        visible = result.visible(validate_hide(hide))

        if json_output:
            data = {k: v for k, v in visible.to_dict().items() if k not in hide}
            console.print_json(json.dumps(data))
            return

        table = Table(title=f"{username}'s GitHub Stats")
        table.add_column("Statistic", style="cyan")
        table.add_column("Value", justify="right")
        for name, value in visible.to_dict().items():
            if name in hide:
                continue
            table.add_row(LABELS[name], "-" if value is None else str(value))
        console.print(table)

    except FetchError as e:
        print_error(e, json_output)
        raise SystemExit(1)

    finally:
        await engine.close()
