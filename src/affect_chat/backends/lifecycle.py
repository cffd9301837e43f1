"""Model lifecycle manager — single-flight loading with graceful degradation.

Each backend moves ``unloaded → loading → ready | failed``.  Concurrent
callers of :meth:`ModelLifecycleManager.ensure_loaded` share the one
in-flight load; a failed load is reported, never raised, and is not retried
until someone calls :meth:`ModelLifecycleManager.reset`.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable

import structlog
from pydantic import BaseModel

from affect_chat.backends.base import BackendId, ModelBackend

logger = structlog.get_logger(__name__)

Loader = Callable[[], Awaitable[None]]


class BackendState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ModelHandle(BaseModel):
    """Snapshot of one backend's lifecycle state."""

    backend_id: BackendId
    state: BackendState
    error: str | None = None


class ModelLifecycleManager:
    """Owns the load state of every registered inference backend.

    Usage::

        manager = ModelLifecycleManager()
        manager.register_backend(classifier)
        state = await manager.ensure_loaded(BackendId.FACIAL)
        if manager.is_ready(BackendId.FACIAL):
            ...
    """

    def __init__(self) -> None:
        self._loaders: dict[BackendId, Loader] = {}
        self._states: dict[BackendId, BackendState] = {}
        self._errors: dict[BackendId, str] = {}
        self._inflight: dict[BackendId, asyncio.Task[BackendState]] = {}

    # ── Registration ──────────────────────────────────────────

    def register(self, backend_id: BackendId, loader: Loader) -> None:
        """Register the coroutine function that loads *backend_id*."""
        if self._states.get(backend_id) == BackendState.LOADING:
            raise RuntimeError(f"Cannot re-register {backend_id.value} while it is loading.")
        self._loaders[backend_id] = loader
        self._states[backend_id] = BackendState.UNLOADED
        self._errors.pop(backend_id, None)

    def register_backend(self, backend: ModelBackend) -> None:
        """Shorthand for ``register(backend.backend_id, backend.load)``."""
        self.register(backend.backend_id, backend.load)

    # ── Loading ───────────────────────────────────────────────

    async def ensure_loaded(self, backend_id: BackendId) -> BackendState:
        """Load *backend_id* if needed and return ``READY`` or ``FAILED``.

        Safe to call redundantly.  While a load is in flight every caller
        awaits the same task, so the loader runs at most once.
        """
        state = self.state(backend_id)
        if state in (BackendState.READY, BackendState.FAILED):
            return state

        task = self._inflight.get(backend_id)
        if task is None:
            loader = self._loaders.get(backend_id)
            if loader is None:
                logger.warning("lifecycle.unregistered_backend", backend=backend_id.value)
                return BackendState.FAILED
            self._states[backend_id] = BackendState.LOADING
            task = asyncio.create_task(self._run_loader(backend_id, loader))
            self._inflight[backend_id] = task

        # Shield so that a cancelled waiter does not abort the shared load.
        return await asyncio.shield(task)

    async def ensure_all_loaded(self) -> dict[BackendId, BackendState]:
        """Load every registered backend concurrently."""
        ids = list(self._loaders)
        results = await asyncio.gather(*(self.ensure_loaded(b) for b in ids))
        return dict(zip(ids, results))

    async def _run_loader(self, backend_id: BackendId, loader: Loader) -> BackendState:
        logger.info("lifecycle.load_started", backend=backend_id.value)
        try:
            await loader()
        except Exception as exc:
            self._states[backend_id] = BackendState.FAILED
            self._errors[backend_id] = str(exc) or type(exc).__name__
            logger.warning(
                "lifecycle.load_failed",
                backend=backend_id.value,
                error=self._errors[backend_id],
            )
        else:
            self._states[backend_id] = BackendState.READY
            logger.info("lifecycle.load_succeeded", backend=backend_id.value)
        finally:
            self._inflight.pop(backend_id, None)
        return self._states[backend_id]

    def reset(self, backend_id: BackendId) -> None:
        """Return a ready or failed backend to ``unloaded`` (manual retry)."""
        if self.state(backend_id) == BackendState.LOADING:
            raise RuntimeError(f"{backend_id.value} is loading; cannot reset.")
        if backend_id in self._loaders:
            self._states[backend_id] = BackendState.UNLOADED
            self._errors.pop(backend_id, None)

    # ── Introspection ─────────────────────────────────────────

    def state(self, backend_id: BackendId) -> BackendState:
        if backend_id not in self._loaders:
            return BackendState.FAILED
        return self._states.get(backend_id, BackendState.UNLOADED)

    def is_ready(self, backend_id: BackendId) -> bool:
        return self.state(backend_id) == BackendState.READY

    def handles(self) -> list[ModelHandle]:
        """One :class:`ModelHandle` per registered backend."""
        return [
            ModelHandle(backend_id=b, state=self.state(b), error=self._errors.get(b))
            for b in self._loaders
        ]
