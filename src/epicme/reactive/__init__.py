"""Reactive layer — change bus, capability gate, subscriptions, outbox.

Depends on the domain layer only; talks to MCP sessions exclusively
through :class:`NotificationOutbox`.
"""

from epicme.reactive.bus import ChangeBus, JournalBus, Subscription
from epicme.reactive.gate import CapabilityGate, DomainCounts, transition
from epicme.reactive.outbox import ListChanged, NotificationOutbox, ResourceUpdated
from epicme.reactive.subscriptions import IdentitySubscriptionRegistry, ResourceListNotifier

__all__ = [
    "CapabilityGate",
    "ChangeBus",
    "DomainCounts",
    "IdentitySubscriptionRegistry",
    "JournalBus",
    "ListChanged",
    "NotificationOutbox",
    "ResourceListNotifier",
    "ResourceUpdated",
    "Subscription",
    "transition",
]
