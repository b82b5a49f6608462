"""Pluggy hook specifications for epicme events.

Hooks observe; they cannot veto or alter a change. Both fire after the
change is committed.
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("epicme")
hookimpl = pluggy.HookimplMarker("epicme")


class EpicMeHookSpec:
    """Hook specifications for the epicme plugin system."""

    @hookspec
    def post_change(
        self,
        entries: list[int],
        tags: list[int],
        videos: list[str],
        categories: list[str],
    ) -> None:
        """Called after every journal or media change is published."""

    @hookspec
    def post_render(self, year: int, uri: str, filename: str) -> None:
        """Called after a wrapped video was rendered successfully."""
