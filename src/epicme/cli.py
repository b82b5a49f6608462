"""Root CLI group for epicme with global flags and command registration."""

from __future__ import annotations

import click

from epicme import __version__
from epicme.commands import register_commands
from epicme.commands._base import EpicGroup
from epicme.commands._context import AppContext
from epicme.config.settings import EpicMeSettings


@click.group(
    cls=EpicGroup,
    invoke_without_command=True,
    examples="""\
  epicme serve
  epicme -c ./epicme.toml video render --mock-time 5
  epicme --verbose --log-json serve --transport streamable-http""",
)
@click.version_option(version=__version__, prog_name="epicme")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_json: bool, config_path: str | None) -> None:
    """epicme — journaling MCP server with live capabilities and wrapped videos."""
    settings = EpicMeSettings.from_cli(
        config_path=config_path,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
