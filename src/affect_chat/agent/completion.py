"""Remote completion client — one bounded attempt, always answers.

:func:`race_with_timeout` is the one cancellation primitive of the engine:
it runs an awaitable against a deadline and returns a tagged result instead
of raising.  :class:`CompletionClient` builds on it so that a slow, failing
or absent conversational backend degrades to a fixed fallback reply.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Generic, TypeVar

import structlog

from affect_chat.backends.base import BackendId, ChatBackend
from affect_chat.backends.lifecycle import ModelLifecycleManager
from affect_chat.config import DEFAULT_FALLBACK_MESSAGE, get_settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# ── Race helper ───────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Completed(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class TimedOut:
    timeout: float


def _discard_outcome(task: asyncio.Task) -> None:
    # Retrieve the loser's outcome so asyncio never reports it as unhandled.
    if not task.cancelled():
        task.exception()


async def race_with_timeout(aw: Awaitable[T], timeout: float) -> Completed[T] | TimedOut:
    """Await *aw* for at most *timeout* seconds.

    Returns :class:`Completed` with the value, or :class:`TimedOut` when the
    deadline wins.  The losing call is cancelled and its eventual outcome is
    discarded.  Exceptions raised by *aw* before the deadline propagate.
    """
    task = asyncio.ensure_future(aw)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return Completed(task.result())
    task.add_done_callback(_discard_outcome)
    task.cancel()
    return TimedOut(timeout)


# ── Completion client ─────────────────────────────────────────


class CompletionClient:
    """Calls the conversational backend with a hard timeout and a fallback.

    Parameters
    ----------
    backend : ChatBackend | None
        The conversational endpoint.  ``None`` means unavailable.
    lifecycle : ModelLifecycleManager | None
        When given, the backend is only called while it reports ready.
    timeout : float | None
        Seconds before the call is abandoned (default from settings, 15 s).
    fallback : str | None
        Reply used on timeout, error, or unavailability.
    """

    def __init__(
        self,
        backend: ChatBackend | None,
        lifecycle: ModelLifecycleManager | None = None,
        *,
        timeout: float | None = None,
        fallback: str | None = None,
    ) -> None:
        settings = get_settings()
        self._backend = backend
        self._lifecycle = lifecycle
        self._timeout = timeout if timeout is not None else settings.completion_timeout_seconds
        self._fallback = fallback or settings.completion_fallback_message or DEFAULT_FALLBACK_MESSAGE

    @property
    def fallback(self) -> str:
        return self._fallback

    @property
    def available(self) -> bool:
        if self._backend is None:
            return False
        return self._lifecycle is None or self._lifecycle.is_ready(BackendId.CONVERSATION)

    async def complete(self, prompt: str) -> str:
        """Return the model's reply to *prompt*, or the fallback.  Never raises."""
        if not self.available:
            logger.warning("completion.backend_unavailable")
            return self._fallback

        try:
            outcome = await race_with_timeout(self._backend.chat(prompt), self._timeout)
            if isinstance(outcome, TimedOut):
                logger.warning("completion.timed_out", timeout=outcome.timeout)
                return self._fallback
            content = outcome.value.message.content
            if not content.strip():
                logger.warning("completion.empty_reply")
                return self._fallback
        except Exception as exc:
            # Includes replies that do not have the ChatReply shape.
            logger.warning("completion.failed", error=str(exc), error_type=type(exc).__name__)
            return self._fallback
        return content
