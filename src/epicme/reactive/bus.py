"""In-process change bus: ordered, awaited, failure-isolated fan-out.

Handlers run in registration order and are awaited one at a time, so a
slow handler delays the ones registered after it. Subscribing or
unsubscribing from inside a handler takes effect on the next publish.

INVARIANT: Handler failures are warnings, never errors.
"""

from __future__ import annotations

import inspect
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from epicme.domain.changes import ChangeDescriptor

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT")

Handler = Callable[[EventT], Awaitable[None] | None]


@dataclass(frozen=True)
class Subscription:
    """Opaque handle returned by :meth:`ChangeBus.subscribe`."""

    id: int
    name: str


class ChangeBus(Generic[EventT]):
    """Publish/subscribe primitive owned by a single server runtime."""

    def __init__(self, name: str = "changes") -> None:
        self._name = name
        self._handlers: dict[Subscription, Handler[EventT]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, handler: Handler[EventT], *, name: str | None = None) -> Subscription:
        """Register *handler*; keep the returned token to unsubscribe."""
        token = Subscription(next(self._ids), name or getattr(handler, "__qualname__", "handler"))
        self._handlers[token] = handler
        return token

    def unsubscribe(self, token: Subscription) -> None:
        """Remove a handler. Unknown tokens are ignored."""
        self._handlers.pop(token, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    async def publish(self, event: EventT) -> None:
        """Deliver *event* to every handler registered before this call."""
        for token, handler in list(self._handlers.items()):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning(
                    "%s bus handler %s failed",
                    self._name,
                    token.name,
                    exc_info=True,
                )


JournalBus = ChangeBus[ChangeDescriptor]
