"""Rich/JSON output for ServiceResult.

Human output is rendered with Rich into a string; ``--json`` returns the
serialized result unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from epicme.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from epicme.services.result import ServiceResult


def format_result(result: ServiceResult, *, json_output: bool = False, verbose: bool = False) -> str:
    """Format a ServiceResult for display."""
    if json_output:
        return result.model_dump_json(indent=2)
    console = create_console()
    if not result.ok:
        _render_error(result, console, verbose=verbose)
    elif result.op == "list_videos":
        _render_videos(result, console)
    else:
        _render_generic(result, console)
    return get_output(console).rstrip("\n")


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="epicme.ok"), Text(f"  {result.op}", style="epicme.op"))


def _field(console: Console, key: str, value: Any) -> None:
    if key == "uri":
        style = "epicme.uri"
    elif key == "id" or key.endswith("_id"):
        style = "epicme.id"
    else:
        style = ""
    console.print(Text(f"  {key}: ", style="epicme.key"), Text(str(value), style=style))


def _render_generic(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


def _render_videos(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    videos = result.data.get("videos", [])
    if not videos:
        console.print(Text("  No videos yet.", style="dim"))
        return
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Name")
    table.add_column("URI", style="epicme.uri")
    for video in videos:
        table.add_row(video["name"], video["uri"])
    console.print(table)


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="epicme.error"),
        Text(f"  {result.op}", style="epicme.op"),
        Text(" — "),
        Text(msg),
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")
