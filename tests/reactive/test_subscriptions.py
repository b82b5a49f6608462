"""Tests for the identity subscription registry and resource-list notifier."""

from __future__ import annotations

import pytest

from epicme.domain.changes import ChangeDescriptor
from epicme.reactive.subscriptions import IdentitySubscriptionRegistry, ResourceListNotifier
from tests.conftest import RecordingSink

pytestmark = pytest.mark.anyio


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


class TestRegistry:
    async def test_only_subscribed_identities_notified(self, sink: RecordingSink) -> None:
        registry = IdentitySubscriptionRegistry(sink)
        registry.subscribe_to("epicme://entries/1")
        await registry.on_change(ChangeDescriptor.for_entries(1, tags=(2,)))
        assert sink.messages == [("resource_updated", ("epicme://entries/1", "Entry 1"))]

    async def test_unsubscribe(self, sink: RecordingSink) -> None:
        registry = IdentitySubscriptionRegistry(sink)
        registry.subscribe_to("epicme://tags/2")
        registry.unsubscribe_from("epicme://tags/2")
        registry.unsubscribe_from("epicme://tags/99")
        await registry.on_change(ChangeDescriptor.for_tags(2))
        assert sink.messages == []
        assert registry.subscribed == frozenset()

    async def test_encoded_and_raw_spellings_match(self, sink: RecordingSink) -> None:
        registry = IdentitySubscriptionRegistry(sink)
        registry.subscribe_to("epicme://videos/my%20wrap.mp4")
        assert registry.is_subscribed("epicme://videos/my wrap.mp4")
        await registry.on_change(ChangeDescriptor.for_videos("my wrap.mp4"))
        assert sink.updates() == ["epicme://videos/my%20wrap.mp4"]
        registry.unsubscribe_from("epicme://videos/my wrap.mp4")
        assert registry.subscribed == frozenset()

    async def test_subscribing_twice_notifies_once(self, sink: RecordingSink) -> None:
        registry = IdentitySubscriptionRegistry(sink)
        registry.subscribe_to("epicme://videos/a.mp4")
        registry.subscribe_to("epicme://videos/a.mp4")
        await registry.on_change(ChangeDescriptor.for_videos("a.mp4"))
        assert sink.updates() == ["epicme://videos/a.mp4"]

    async def test_subscribing_to_missing_identity_is_allowed(self, sink: RecordingSink):
        registry = IdentitySubscriptionRegistry(sink)
        registry.subscribe_to("epicme://entries/404")
        assert registry.is_subscribed("epicme://entries/404")
        await registry.on_change(ChangeDescriptor.for_entries(404))
        assert sink.updates() == ["epicme://entries/404"]

    async def test_notifications_follow_descriptor_order(self, sink: RecordingSink) -> None:
        registry = IdentitySubscriptionRegistry(sink)
        for uri in ("epicme://entries/1", "epicme://tags/5", "epicme://entries/2"):
            registry.subscribe_to(uri)
        await registry.on_change(ChangeDescriptor(entries=(2, 1), tags=(5,)))
        assert sink.updates() == [
            "epicme://entries/2",
            "epicme://entries/1",
            "epicme://tags/5",
        ]


class TestResourceListNotifier:
    @pytest.mark.parametrize(
        "descriptor",
        [
            ChangeDescriptor.for_tags(1),
            ChangeDescriptor.for_videos("a.mp4"),
            ChangeDescriptor.for_tags(1, entries=(2,)),
        ],
    )
    async def test_listable_changes(self, sink: RecordingSink, descriptor) -> None:
        await ResourceListNotifier(sink).on_change(descriptor)
        assert sink.lists() == ["resources"]

    @pytest.mark.parametrize(
        "descriptor",
        [ChangeDescriptor.for_entries(1), ChangeDescriptor.for_entries(1, tags=(1,))],
    )
    async def test_entry_change_is_silent(self, sink: RecordingSink, descriptor) -> None:
        await ResourceListNotifier(sink).on_change(descriptor)
        assert sink.messages == []
