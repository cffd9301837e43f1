"""Affect stream — ordered hand-off from sample producers to session trackers."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Iterable

import structlog

from affect_chat.affect.models import ScopedSample

logger = structlog.get_logger(__name__)

SampleConsumer = Callable[[ScopedSample], Awaitable[None]]

STATS_INTERVAL_SECONDS = 60


class AffectStream:
    """Buffers session-addressed affect samples and forwards them, in arrival
    order, to every registered consumer.

    Producers (HTTP intake, the frame sampler) never wait on consumers: when
    the buffer is full the *oldest* queued sample is discarded, since a
    stale expression is worth less than the newest one.  A single loop
    drains the buffer, so consumers see samples exactly in publish order.
    """

    def __init__(self, maxsize: int = 1_000) -> None:
        self._queue: asyncio.Queue[ScopedSample] = asyncio.Queue(maxsize=maxsize)
        self._consumers: list[SampleConsumer] = []
        self._running = False
        self._processed_total = 0
        self._discarded_total = 0

    def add_consumer(self, fn: SampleConsumer) -> None:
        self._consumers.append(fn)

    # ── Producer side ─────────────────────────────────────────

    async def publish(self, item: ScopedSample) -> None:
        """Queue *item*; evicts the oldest queued item when full."""
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()
                self._queue.task_done()
                self._discarded_total += 1
                logger.debug("affect_stream.sample_discarded", discarded_total=self._discarded_total)

    async def publish_batch(self, items: Iterable[ScopedSample]) -> None:
        for item in items:
            await self.publish(item)

    # ── Consumer loop ─────────────────────────────────────────

    async def start(self) -> None:
        """Drain the buffer until :meth:`stop` (run as a background task)."""
        self._running = True
        logger.info("affect_stream.started", consumers=len(self._consumers))
        next_stats = time.monotonic() + STATS_INTERVAL_SECONDS

        while self._running:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            try:
                await self._dispatch(item)
            finally:
                self._processed_total += 1
                self._queue.task_done()

            if time.monotonic() >= next_stats:
                logger.info("affect_stream.stats", **self.stats)
                next_stats = time.monotonic() + STATS_INTERVAL_SECONDS

    async def _dispatch(self, item: ScopedSample) -> None:
        for consumer in self._consumers:
            try:
                await consumer(item)
            except Exception as exc:
                logger.error(
                    "affect_stream.consumer_error",
                    consumer=getattr(consumer, "__qualname__", repr(consumer)),
                    session_id=item.session_id,
                    modality=item.sample.modality.value,
                    error=str(exc),
                )

    async def stop(self) -> None:
        self._running = False
        logger.info("affect_stream.stopped", **self.stats)

    async def drain(self) -> None:
        """Wait until every queued sample has reached the consumers."""
        await self._queue.join()

    # ── Introspection ─────────────────────────────────────────

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def processed_total(self) -> int:
        return self._processed_total

    @property
    def discarded_total(self) -> int:
        return self._discarded_total

    @property
    def stats(self) -> dict[str, int]:
        return {
            "processed_total": self._processed_total,
            "discarded_total": self._discarded_total,
            "pending": self.pending,
        }
