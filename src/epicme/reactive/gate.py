"""Capability gate — availability of prompts and resources follows journal state.

Each capability pairs an ``enabled`` flag with a predicate over
:class:`DomainCounts`. :meth:`CapabilityGate.recompute` runs on every bus
tick: flags that flip produce exactly one list-changed notification per
affected capability kind for that tick; flags that stay put produce none.

Startup is two-phase: :meth:`CapabilityGate.initialize` records the first
observation without notifying, since nothing has changed relative to a
state no client has seen.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from epicme.reactive.outbox import ListCategory

if TYPE_CHECKING:
    from epicme.domain.changes import ChangeDescriptor
    from epicme.reactive.outbox import NotificationSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainCounts:
    """Snapshot of how much of each category currently exists."""

    entries: int = 0
    tags: int = 0
    videos: int = 0


Predicate = Callable[[DomainCounts], bool]
CountsReader = Callable[[], DomainCounts]


def transition(previous: bool | None, observed: bool) -> tuple[bool, bool]:
    """Pure state transition: ``(previous, observed) -> (state, changed)``.

    ``previous is None`` means never observed; establishing the first state
    is not a change.

    Examples:
        >>> transition(None, True)
        (True, False)
        >>> transition(False, True)
        (True, True)
        >>> transition(True, True)
        (True, False)
    """
    if previous is None:
        return observed, False
    return observed, observed != previous


@dataclass
class CapabilityState:
    """One gated capability."""

    capability_id: str
    kind: ListCategory
    predicate: Predicate
    enabled: bool | None = None


class CapabilityGate:
    """Holds capability flags and emits list-changed bursts on real flips."""

    def __init__(self, read_counts: CountsReader, sink: NotificationSink) -> None:
        self._read_counts = read_counts
        self._sink = sink
        self._states: dict[str, CapabilityState] = {}
        self._initialized = False

    def register(self, capability_id: str, kind: ListCategory, predicate: Predicate) -> None:
        """Gate *capability_id* on *predicate*. Re-registering replaces it.

        After :meth:`initialize`, the new flag is observed immediately and
        silently; other flags keep their state.
        """
        state = CapabilityState(capability_id, kind, predicate)
        if self._initialized:
            state.enabled = predicate(self._read_counts())
        self._states[capability_id] = state

    def is_enabled(self, capability_id: str) -> bool:
        """Ungated capabilities are always enabled; unobserved ones are not."""
        state = self._states.get(capability_id)
        if state is None:
            return True
        return bool(state.enabled)

    def is_gated(self, capability_id: str) -> bool:
        return capability_id in self._states

    def snapshot(self) -> dict[str, bool]:
        return {cid: bool(state.enabled) for cid, state in self._states.items()}

    def initialize(self) -> None:
        """Establish every flag from current counts without notifying."""
        counts = self._read_counts()
        for state in self._states.values():
            state.enabled = state.predicate(counts)
        self._initialized = True
        logger.debug("Capabilities initialized: %s", self.snapshot())

    def recompute(self) -> set[ListCategory]:
        """Re-evaluate every predicate; notify once per kind that flipped.

        Returns the kinds that were notified.
        """
        if not self._initialized:
            self.initialize()
            return set()

        counts = self._read_counts()
        flipped: set[ListCategory] = set()
        for state in self._states.values():
            new_state, changed = transition(state.enabled, state.predicate(counts))
            state.enabled = new_state
            if changed:
                logger.debug(
                    "Capability %s %s",
                    state.capability_id,
                    "enabled" if new_state else "disabled",
                )
                flipped.add(state.kind)

        for kind in sorted(flipped):
            self._sink.list_changed(kind)
        return flipped

    async def on_change(self, descriptor: ChangeDescriptor) -> None:
        """Bus handler: every tick triggers a recompute."""
        self.recompute()
