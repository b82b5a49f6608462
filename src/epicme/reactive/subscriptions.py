"""Identity subscription registry and resource-list change notifier.

Clients subscribe to individual resource URIs. On every bus tick the
registry walks the identities named by the change and enqueues one point
notification for each one somebody subscribed to. Enqueueing does not wait
for delivery; the outbox keeps per-identity order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from epicme.domain.identities import TAGS, VIDEOS, identity_key

if TYPE_CHECKING:
    from epicme.domain.changes import ChangeDescriptor
    from epicme.reactive.outbox import NotificationSink

logger = logging.getLogger(__name__)


class IdentitySubscriptionRegistry:
    """Set of subscribed resource URIs, by canonical key; membership alone decides delivery."""

    def __init__(self, sink: NotificationSink) -> None:
        self._sink = sink
        self._uris: set[str] = set()

    def subscribe_to(self, uri: str) -> None:
        self._uris.add(identity_key(str(uri)))
        logger.debug("Subscribed to %s", uri)

    def unsubscribe_from(self, uri: str) -> None:
        self._uris.discard(identity_key(str(uri)))
        logger.debug("Unsubscribed from %s", uri)

    def is_subscribed(self, uri: str) -> bool:
        return identity_key(str(uri)) in self._uris

    @property
    def subscribed(self) -> frozenset[str]:
        return frozenset(self._uris)

    async def on_change(self, descriptor: ChangeDescriptor) -> None:
        """Bus handler: one point notification per subscribed affected identity."""
        for identity in descriptor.identities():
            if self.is_subscribed(identity.uri):
                self._sink.resource_updated(identity.uri, identity.label)


class ResourceListNotifier:
    """Signals a resources list change whenever a listable instance set changes.

    Tags and videos are listed instance by instance, so adding or removing
    one changes what ``resources/list`` returns even when no capability
    flips.
    """

    listable: frozenset[str] = frozenset({TAGS, VIDEOS})

    def __init__(self, sink: NotificationSink) -> None:
        self._sink = sink

    async def on_change(self, descriptor: ChangeDescriptor) -> None:
        if any(descriptor.touches(category) for category in self.listable):
            self._sink.list_changed("resources")
