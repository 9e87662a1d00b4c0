import asyncio
import logging

import pytest

from conversation_playback.util.broadcast import BroadcastChannel

_logger = logging.getLogger(__name__)


@pytest.mark.asyncio
async def test_every_subscriber_gets_every_item() -> None:
    channel: BroadcastChannel[int] = BroadcastChannel()
    first = channel.subscribe()
    second = channel.subscribe()

    for i in range(5):
        channel.publish(i)
    channel.close()

    assert [i async for i in first] == [0, 1, 2, 3, 4]
    assert [i async for i in second] == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_no_replay_for_late_subscribers() -> None:
    channel: BroadcastChannel[int] = BroadcastChannel()
    channel.publish(1)
    late = channel.subscribe()
    channel.publish(2)
    assert late.drain() == [2]


@pytest.mark.asyncio
async def test_predicates_filter() -> None:
    channel: BroadcastChannel[int] = BroadcastChannel()
    evens = channel.subscribe(lambda i: i % 2 == 0)
    seen: list[int] = []
    channel.add_listener(seen.append, lambda i: i > 2)

    for i in range(6):
        channel.publish(i)

    assert evens.drain() == [0, 2, 4]
    assert seen == [3, 4, 5]


@pytest.mark.asyncio
async def test_consumer_waits_for_items() -> None:
    channel: BroadcastChannel[str] = BroadcastChannel()
    subscription = channel.subscribe()

    async def consume() -> list[str]:
        return [item async for item in subscription]

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0.01)
    channel.publish("a")
    await asyncio.sleep(0.01)
    channel.publish("b")
    channel.close()
    assert await asyncio.wait_for(consumer, 1.0) == ["a", "b"]


@pytest.mark.asyncio
async def test_closed_subscription_stops_receiving() -> None:
    channel: BroadcastChannel[int] = BroadcastChannel()
    async with channel.subscribe() as subscription:
        channel.publish(1)
        assert channel.subscriber_count == 1
    channel.publish(2)

    assert subscription.closed
    assert channel.subscriber_count == 0
    assert [i async for i in subscription] == [1]


@pytest.mark.asyncio
async def test_listener_errors_are_logged(caplog) -> None:
    channel: BroadcastChannel[int] = BroadcastChannel('numbers')
    received: list[int] = []

    def failing(item: int) -> None:
        raise ValueError(f"bad item {item}")

    channel.add_listener(failing)
    remove = channel.add_listener(received.append)
    with caplog.at_level(logging.ERROR):
        channel.publish(1)
    assert received == [1]
    assert "numbers" in caplog.text

    remove()
    channel.publish(2)
    assert received == [1]


@pytest.mark.asyncio
async def test_subscribe_after_close() -> None:
    channel: BroadcastChannel[int] = BroadcastChannel()
    channel.close()
    channel.close()
    subscription = channel.subscribe()
    channel.publish(1)
    assert subscription.closed
    assert [i async for i in subscription] == []
