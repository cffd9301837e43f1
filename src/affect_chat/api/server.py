"""FastAPI application — affect intake, conversation sessions, and system status.

This module wires together all infrastructure:
- CORS, request logging, and error-handling middleware
- The :class:`~affect_chat.engine.Engine` (built and loaded in the lifespan)
- Affect sample intake and stable-verdict routes
- Conversation session routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Callable

import structlog
from fastapi import Depends, FastAPI

from affect_chat import __version__
from affect_chat.api.deps import get_engine
from affect_chat.api.middleware import setup_middleware
from affect_chat.api.routes.affect import router as affect_router
from affect_chat.api.routes.sessions import router as sessions_router
from affect_chat.engine import Engine

logger = structlog.get_logger(__name__)


def create_app(engine_factory: Callable[[], Engine] | None = None) -> FastAPI:
    """Build the application.

    ``engine_factory`` lets callers (tests, embedding apps) supply an engine
    with their own backends; by default one is built from settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle hooks."""
        engine = engine_factory() if engine_factory else Engine()
        await engine.start()
        app.state.engine = engine
        logger.info("server.started", port=engine.settings.api_port)

        yield  # ← application runs

        await engine.stop()
        app.state.engine = None
        logger.info("server.stopped")

    app = FastAPI(
        title="Affect Chat API",
        description="Emotional-support chat with stabilised facial and vocal affect signals.",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────
    setup_middleware(app)

    # ── Routers ───────────────────────────────────────────────
    app.include_router(affect_router)
    app.include_router(sessions_router)

    # ── Health ────────────────────────────────────────────────

    @app.get("/health", tags=["system"])
    async def health():
        engine: Engine | None = getattr(app.state, "engine", None)
        return {"status": "ok", "stream_pending": engine.stream.pending if engine else 0}

    @app.get("/system/info", tags=["system"])
    async def system_info(engine: Engine = Depends(get_engine)):
        """Backend readiness and runtime counters."""
        return {
            "version": __version__,
            "backends": [h.model_dump(mode="json") for h in engine.lifecycle.handles()],
            "completion_available": engine.completion.available,
            "stream": engine.stream.stats,
            "sessions": engine.session_count,
        }

    return app


app = create_app()
