import asyncio
import logging

import pytest

from gridsync.shared.core.event_bus import EventBus


def test_publish_follows_subscription_order():
    bus = EventBus()
    received = []
    bus.subscribe("dataLoaded", lambda p: received.append(("first", p["page"])))
    bus.subscribe("dataLoaded", lambda p: received.append(("second", p["page"])))

    bus.publish("dataLoaded", {"page": 2})

    assert received == [("first", 2), ("second", 2)]


def test_failing_handler_does_not_stop_delivery(caplog):
    bus = EventBus()
    received = []

    def broken(payload):
        raise ValueError("handler blew up")

    bus.subscribe("error", broken)
    bus.subscribe("error", received.append)

    with caplog.at_level(logging.ERROR):
        bus.publish("error", {"message": "x"})

    assert received == [{"message": "x"}]
    assert "EventBus handler error in 'broken' for topic 'error'" in caplog.text


def test_subscribe_is_idempotent_and_unsubscribe_removes():
    bus = EventBus()
    received = []
    bus.subscribe("warning", received.append)
    bus.subscribe("warning", received.append)
    assert bus.handler_count("warning") == 1

    bus.unsubscribe("warning", received.append)
    bus.unsubscribe("warning", received.append)
    bus.publish("warning", {"message": "ignored"})

    assert received == []
    assert bus.handler_count("warning") == 0


def test_topics_are_isolated():
    bus = EventBus()
    received = []
    bus.subscribe("rowAdd", received.append)
    bus.publish("rowRemove", {"row": 1})
    assert received == []


@pytest.mark.asyncio
async def test_coroutine_handlers_are_awaited():
    bus = EventBus()
    received = []

    async def slow(payload):
        await asyncio.sleep(0.01)
        received.append(payload["page"])

    bus.subscribe("dataLoaded", slow)
    bus.publish("dataLoaded", {"page": 1})

    assert received == []
    assert await bus.wait_until_idle() is True
    assert received == [1]


@pytest.mark.asyncio
async def test_coroutine_handler_errors_are_logged(caplog):
    bus = EventBus()

    async def broken(payload):
        raise RuntimeError("async failure")

    bus.subscribe("dataLoaded", broken)
    with caplog.at_level(logging.ERROR):
        bus.publish("dataLoaded", {})
        await bus.wait_until_idle()

    assert "async failure" in caplog.text


def test_coroutine_handler_without_loop_is_skipped(caplog):
    bus = EventBus()

    async def handler(payload):
        pass

    bus.subscribe("dataLoaded", handler)
    with caplog.at_level(logging.WARNING):
        bus.publish("dataLoaded", {})

    assert "skipped: no running event loop" in caplog.text


@pytest.mark.asyncio
async def test_clear_drops_subscribers_and_tasks():
    bus = EventBus()
    received = []

    async def slow(payload):
        await asyncio.sleep(1)
        received.append(payload)

    bus.subscribe("dataLoaded", slow)
    bus.publish("dataLoaded", {})
    bus.clear()

    assert bus.handler_count("dataLoaded") == 0
    assert await bus.wait_until_idle() is True
    assert received == []
