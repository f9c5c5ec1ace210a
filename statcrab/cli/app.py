"""Statcrab CLI application."""

import json
import os
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.markup import escape

from .. import __version__
from ..config import StatcrabConfig
from ..engine import StatcrabEngine
from ..errors import FetchError
from ..utils.logging import setup_logging

console = Console()

# Failures while reading or validating a config file
CONFIG_ERRORS = (OSError, ValueError, yaml.YAMLError)


def find_config() -> str | None:
    """
    Find config file using standard priority order:

    1. STATCRAB_CONFIG environment variable
    2. .statcrab.yaml in current directory (project config)
    3. ~/.config/statcrab/config.yaml (user config)

    Returns None if no config found.
    """
    env_config = os.environ.get("STATCRAB_CONFIG")
    if env_config:
        path = Path(env_config)
        if path.exists():
            return str(path)

    project_config = Path.cwd() / ".statcrab.yaml"
    if project_config.exists():
        return str(project_config)

    user_config = Path.home() / ".config" / "statcrab" / "config.yaml"
    if user_config.exists():
        return str(user_config)

    return None


def load_settings(config_path: str | None) -> StatcrabConfig:
    """Load the config file (if any) plus environment overrides."""
    return StatcrabConfig.from_env(config_path)


def build_engine(settings: StatcrabConfig) -> StatcrabEngine:
    """Build engine from the settings resolved by the cli group."""
    return StatcrabEngine(config=settings)


def print_error(exc: FetchError, json_output: bool) -> None:
    """Render a structured error."""
    if json_output:
        console.print_json(json.dumps({"error": exc.to_dict()}))
        return
    console.print(f"[red]Error ({exc.kind.value}): {escape(str(exc))}[/red]")
    reset_at = getattr(exc, "reset_at", None)
    if reset_at:
        console.print(f"[dim]Quota resets at {reset_at}[/dim]")


def exclude_repo_option(f):
    """Shared --exclude-repo/-x option for subcommands."""
    return click.option(
        "--exclude-repo", "-x",
        multiple=True,
        help="Repository name to leave out (repeatable, case-sensitive)",
    )(f)


@click.group()
@click.version_option(version=__version__, prog_name="statcrab")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option("--no-config", is_flag=True, help="Disable config auto-loading")
@click.option("--debug", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str, no_config: bool, debug: bool) -> None:
    """Statcrab — GitHub profile statistics and language rankings.

    Requires a GitHub token (GITHUB_TOKEN or github.token in the config).

    Config file locations (in priority order):

        1. -c/--config PATH (explicit)

        2. STATCRAB_CONFIG env var

        3. .statcrab.yaml (project config)

        4. ~/.config/statcrab/config.yaml (user config)

    Examples:

        statcrab stats octocat

        statcrab langs octocat --max-languages 5 -x dotfiles
    """
    ctx.ensure_object(dict)

    if no_config:
        config = None
    elif config is None:
        config = find_config()

    try:
        settings = load_settings(config)
    except CONFIG_ERRORS as e:
        console.print(f"[red]Error (config): could not load {config}: {escape(str(e))}[/red]")
        raise SystemExit(1)

    if debug:
        settings.log_level = "DEBUG"
    setup_logging(settings)

    ctx.obj["config"] = config
    ctx.obj["settings"] = settings
    ctx.obj["debug"] = debug


# Import and register commands
from .commands import langs, stats, themes, version

cli.add_command(stats.stats)
cli.add_command(langs.langs)
cli.add_command(themes.themes)
cli.add_command(version.version)
