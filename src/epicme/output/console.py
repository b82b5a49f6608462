"""Rich Console factory, theme and progress bar for epicme output.

Result rendering goes to a StringIO buffer, preserving the
``format_result() -> str`` contract. In non-TTY environments (tests,
pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.theme import Theme

EPICME_THEME = Theme(
    {
        "epicme.ok": "bold green",
        "epicme.error": "bold red",
        "epicme.warning": "bold yellow",
        "epicme.op": "bold cyan",
        "epicme.key": "dim",
        "epicme.id": "bold blue",
        "epicme.uri": "magenta",
        "epicme.title": "bold",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=EPICME_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def create_progress(description: str) -> tuple[Progress, int]:
    """A stderr progress bar over ``[0, 1]`` and the id of its single task.

    Renders nothing when stderr is not a terminal.
    """
    progress = Progress(
        TextColumn("[epicme.op]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True, theme=EPICME_THEME),
        transient=True,
    )
    task_id = progress.add_task(description, total=1.0)
    return progress, task_id
