"""structlog configuration for epicme.

Stdout belongs to the stdio MCP transport, so every log line goes to
stderr, either as colored console text (default) or as JSON lines
(``--log-json``). Stdlib loggers (``mcp``, ``sqlalchemy``, our own
``logging.getLogger`` users) are routed through the same formatter.

Render jobs bind ``render_year`` with :func:`render_context`; the value is
attached to every record logged while the job runs.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

# Third-party loggers that stay at WARNING even with --verbose.
QUIET_LOGGERS = ("mcp", "sqlalchemy", "httpx", "uvicorn.access")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> list[structlog.types.Processor]:
    if log_json:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route structlog and stdlib logging to a single stderr handler.

    Args:
        verbose: ``epicme`` loggers emit DEBUG; otherwise WARNING and up.
        log_json: One JSON object per line instead of console text.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("epicme").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def render_context(year: int, **extra: Any) -> Iterator[None]:
    """Bind ``render_year`` (plus *extra*) to log records for the duration."""
    with structlog.contextvars.bound_contextvars(render_year=year, **extra):
        yield
