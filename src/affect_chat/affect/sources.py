"""Affect sample sources — fixed-interval polling of the facial classifier.

The capture widget owns the camera; it hands the sampler a zero-argument
coroutine that returns the latest frame (or ``None`` when no frame is
available).  Every ``interval_ms`` the sampler grabs a frame and lets the
tracker classify and stabilise it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from affect_chat.affect.tracker import AffectTracker
from affect_chat.config import get_settings

logger = structlog.get_logger(__name__)

FrameSource = Callable[[], Awaitable[Any]]


class AffectSampler:
    """Background loop that polls frames into an :class:`AffectTracker`.

    Integration::

        sampler = AffectSampler(tracker, grab_frame)
        await sampler.start()
        ...
        await sampler.stop()
    """

    def __init__(
        self,
        tracker: AffectTracker,
        frame_source: FrameSource,
        interval_ms: int | None = None,
    ) -> None:
        self._tracker = tracker
        self._frame_source = frame_source
        self._interval = (interval_ms or get_settings().facial_poll_interval_ms) / 1000
        self._running = False
        self._task: asyncio.Task | None = None
        self._stats = {"frames": 0, "samples": 0, "errors": 0}

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("sampler.started", interval_ms=int(self._interval * 1000))

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("sampler.stopped", **self._stats)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    # ── Main loop ─────────────────────────────────────────────

    async def _run_loop(self) -> None:
        while self._running:
            await self.poll_once()
            await asyncio.sleep(self._interval)

    async def poll_once(self) -> None:
        """Grab one frame and classify it.  Never raises."""
        try:
            frame = await self._frame_source()
        except Exception:
            self._stats["errors"] += 1
            logger.exception("sampler.frame_source_error")
            return
        if frame is None:
            return
        self._stats["frames"] += 1
        if await self._tracker.observe_frame(frame) is not None:
            self._stats["samples"] += 1
