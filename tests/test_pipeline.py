"""Tests for the affect stream."""

import asyncio

import pytest

from affect_chat.affect.models import Modality, ScopedSample
from affect_chat.affect.tracker import AffectTracker
from affect_chat.streaming.pipeline import AffectStream

from conftest import make_sample


def scoped(label: str, confidence: float, session_id: str = "s1", **kwargs) -> ScopedSample:
    return ScopedSample(session_id=session_id, sample=make_sample(label, confidence, **kwargs))


@pytest.mark.asyncio
async def test_stream_publish_and_consume():
    """Samples published to the stream reach registered consumers."""
    received: list[ScopedSample] = []

    async def consumer(item: ScopedSample) -> None:
        received.append(item)

    stream = AffectStream()
    stream.add_consumer(consumer)
    task = asyncio.create_task(stream.start())

    await stream.publish(scoped("happy", 0.8, "abc"))
    await stream.drain()
    await stream.stop()
    task.cancel()

    assert len(received) == 1
    assert received[0].session_id == "abc"
    assert received[0].sample.confidence == 0.8
    assert stream.processed_total == 1


@pytest.mark.asyncio
async def test_stream_batch_keeps_order():
    received: list[ScopedSample] = []

    async def consumer(item: ScopedSample) -> None:
        received.append(item)

    stream = AffectStream()
    stream.add_consumer(consumer)
    task = asyncio.create_task(stream.start())

    items = [scoped("sad", 0.3 + i * 0.1) for i in range(5)]
    await stream.publish_batch(items)
    await stream.drain()
    await stream.stop()
    task.cancel()

    assert received == items
    assert stream.pending == 0


@pytest.mark.asyncio
async def test_failing_consumer_does_not_block_others():
    received: list[ScopedSample] = []

    async def broken(item: ScopedSample) -> None:
        raise RuntimeError("boom")

    async def consumer(item: ScopedSample) -> None:
        received.append(item)

    stream = AffectStream()
    stream.add_consumer(broken)
    stream.add_consumer(consumer)
    task = asyncio.create_task(stream.start())

    await stream.publish(scoped("angry", 0.9))
    await stream.drain()
    await stream.stop()
    task.cancel()

    assert len(received) == 1


@pytest.mark.asyncio
async def test_stream_routes_to_per_session_trackers():
    trackers = {"a": AffectTracker(), "b": AffectTracker()}

    async def push(item: ScopedSample) -> None:
        trackers[item.session_id].push(item.sample)

    stream = AffectStream()
    stream.add_consumer(push)
    task = asyncio.create_task(stream.start())

    await stream.publish_batch(
        [scoped("calm", 0.7, "a", modality=Modality.VOCAL) for _ in range(3)]
    )
    await stream.drain()
    await stream.stop()
    task.cancel()

    assert trackers["a"].stable_tone().value == "calm"
    assert trackers["b"].stable_tone() is None


@pytest.mark.asyncio
async def test_full_buffer_discards_oldest():
    received: list[ScopedSample] = []

    async def consumer(item: ScopedSample) -> None:
        received.append(item)

    stream = AffectStream(maxsize=2)
    stream.add_consumer(consumer)
    items = [scoped("happy", c) for c in (0.3, 0.4, 0.5)]
    await stream.publish_batch(items)
    assert stream.pending == 2
    assert stream.discarded_total == 1

    task = asyncio.create_task(stream.start())
    await stream.drain()
    await stream.stop()
    task.cancel()

    assert received == items[1:]
    assert stream.stats == {"processed_total": 2, "discarded_total": 1, "pending": 0}
