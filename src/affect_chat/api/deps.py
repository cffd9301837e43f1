"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request

from affect_chat.agent.session import ConversationSession
from affect_chat.engine import Engine


def get_engine(request: Request) -> Engine:
    """Return the engine built by the lifespan, or 503 before startup."""
    engine: Engine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(503, "Engine not ready.")
    return engine


def lookup_session(engine: Engine, session_id: str) -> ConversationSession:
    session = engine.get_session(session_id)
    if session is None:
        raise HTTPException(404, "Session not found.")
    return session
