"""Subcommand modules for epicme.

Provides register_commands() which uses deferred imports to keep
``epicme --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``video`` group and the ``serve`` command on the root group."""
    from epicme.commands.serve import serve
    from epicme.commands.video import video

    cli.add_command(video)
    cli.add_command(serve)
