"""serve — start the MCP server."""

from __future__ import annotations

import click

from epicme.commands._base import EpicCommand
from epicme.commands._context import AppContext


@click.command(
    cls=EpicCommand,
    examples="""\
  # Start the MCP server (stdio transport, default)
  epicme serve

  # Streamable HTTP on custom host/port
  epicme serve --transport streamable-http --host 0.0.0.0 --port 9000

  # SSE transport on the configured address
  epicme serve --transport sse""",
)
@click.option(
    "--transport",
    default=None,
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol (default: [mcp] transport, else stdio).",
)
@click.option("--host", default=None, help="Bind address (HTTP transports only).")
@click.option("--port", default=None, type=int, help="Listen port (HTTP transports only).")
@click.pass_obj
def serve(app: AppContext, transport: str | None, host: str | None, port: int | None) -> None:
    """Start the MCP server."""
    from epicme.mcp.server import create_server

    overrides = {k: v for k, v in {"host": host, "port": port}.items() if v is not None}
    settings = app.settings
    if overrides:
        settings = settings.model_copy(update={"mcp": settings.mcp.model_copy(update=overrides)})
    server = create_server(settings)
    server.run(transport=transport or settings.mcp.transport)  # type: ignore[arg-type]
