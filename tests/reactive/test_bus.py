"""Tests for the in-process change bus."""

from __future__ import annotations

import logging

import pytest

from epicme.reactive.bus import ChangeBus

pytestmark = pytest.mark.anyio


class TestPublish:
    async def test_handlers_run_in_registration_order(self) -> None:
        bus: ChangeBus[int] = ChangeBus()
        seen: list[str] = []

        async def first(event: int) -> None:
            seen.append(f"first:{event}")

        def second(event: int) -> None:
            seen.append(f"second:{event}")

        bus.subscribe(first)
        bus.subscribe(second)
        await bus.publish(1)
        assert seen == ["first:1", "second:1"]

    async def test_failure_is_isolated_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        bus: ChangeBus[int] = ChangeBus("journal")
        seen: list[int] = []

        def broken(event: int) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken, name="broken")
        bus.subscribe(seen.append)
        with caplog.at_level(logging.WARNING, logger="epicme.reactive.bus"):
            await bus.publish(7)
        assert seen == [7]
        assert "journal bus handler broken failed" in caplog.text

    async def test_no_subscribers(self) -> None:
        await ChangeBus[int]().publish(1)


class TestSubscriptions:
    async def test_unsubscribe_stops_delivery(self) -> None:
        bus: ChangeBus[int] = ChangeBus()
        seen: list[int] = []
        token = bus.subscribe(seen.append)
        await bus.publish(1)
        bus.unsubscribe(token)
        await bus.publish(2)
        assert seen == [1]
        assert bus.subscriber_count == 0

    async def test_unsubscribe_unknown_token_is_ignored(self) -> None:
        bus: ChangeBus[int] = ChangeBus()
        token = bus.subscribe(lambda e: None)
        bus.unsubscribe(token)
        bus.unsubscribe(token)
        assert bus.subscriber_count == 0

    async def test_subscribe_during_publish_applies_next_time(self) -> None:
        bus: ChangeBus[int] = ChangeBus()
        late: list[int] = []

        def adder(event: int) -> None:
            if event == 1:
                bus.subscribe(late.append)

        bus.subscribe(adder)
        await bus.publish(1)
        assert late == []
        await bus.publish(2)
        assert late == [2]

    def test_tokens_are_distinct(self) -> None:
        bus: ChangeBus[int] = ChangeBus()
        a = bus.subscribe(lambda e: None, name="same")
        b = bus.subscribe(lambda e: None, name="same")
        assert a != b
        assert bus.subscriber_count == 2
