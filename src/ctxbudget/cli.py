"""CLI for ctxbudget."""

import logging
import sys

import click

from . import __version__
from .command import ContextCommand
from .config import Config
from .locator import validate_path
from .visualizer import MODES


def _setup_logging(verbose: int):
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _check_path(ctx, param, value):
    if value is None:
        return value
    try:
        return validate_path(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


@click.command()
@click.version_option(version=__version__)
@click.argument("mode", required=False, default="standard",
                type=click.Choice(MODES, case_sensitive=False))
@click.option("--project", "-p", callback=_check_path,
              help="Start the project search here instead of the current directory")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--no-cache", is_flag=True, help="Ignore any cached analysis")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Config file (default: ~/.config/ctxbudget/config.yaml)")
@click.option("--verbose", "-v", count=True, help="Log progress to stderr (-vv for debug)")
def cli(mode, project, as_json, no_color, no_cache, config_path, verbose):
    """Show the context token budget of a Claude Code project.

    Estimates what the system prompt, built-in tools, enabled MCP servers,
    custom agents and the CLAUDE.md memory file cost before the first
    message is sent.

    \b
    Modes:
      compact   Usage grid plus top servers and agents
      summary   Three-line overview
      standard  Grid, top servers and tools, agents, recommendations
      detailed  Everything, with per-category bars and timings
    """
    _setup_logging(verbose)

    config = Config(config_path) if config_path else None
    command = ContextCommand(config=config)

    try:
        output = command.execute(
            mode=mode.lower(),
            start_path=project,
            use_cache=not no_cache,
            as_json=as_json,
            use_color=not no_color,
        )
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(output.rstrip("\n"))


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
