"""Conversation session routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from affect_chat.api.deps import get_engine, lookup_session
from affect_chat.api.schemas import AgeGroupRequest, ChatRequest, SessionRequest
from affect_chat.engine import Engine

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
async def create_session(
    req: SessionRequest | None = None,
    engine: Engine = Depends(get_engine),
):
    req = req or SessionRequest()
    session = engine.create_session(req.age_group, req.greeting)
    return {
        "session_id": session.id,
        "age_group": session.age_group.value,
        "messages": [m.model_dump(mode="json") for m in session.messages],
    }


@router.get("/{session_id}/messages")
async def list_messages(session_id: str, engine: Engine = Depends(get_engine)):
    session = lookup_session(engine, session_id)
    return {
        "session_id": session.id,
        "age_group": session.age_group.value,
        "processing": session.processing,
        "messages": [m.model_dump(mode="json") for m in session.messages],
    }


@router.put("/{session_id}/age-group")
async def set_age_group(
    session_id: str,
    req: AgeGroupRequest,
    engine: Engine = Depends(get_engine),
):
    """Change the age bracket; applies from the next turn."""
    session = lookup_session(engine, session_id)
    session.age_group = req.age_group
    return {"session_id": session.id, "age_group": session.age_group.value}


@router.post("/{session_id}/messages")
async def send_message(
    session_id: str,
    req: ChatRequest,
    engine: Engine = Depends(get_engine),
):
    """Run one turn.

    Affect hints not given explicitly are taken from the stable tracker
    verdicts (and, for the emotion, the text keyword heuristic).  A session
    that is still answering the previous message yields 409.
    """
    session = lookup_session(engine, session_id)
    if not req.text.strip():
        raise HTTPException(422, "Message must not be blank.")

    emotion, tone = engine.resolve_affect(
        session, req.text, req.emotion, req.tone, req.use_detected_affect
    )
    reply = await session.send_or_raise(req.text, emotion, tone)

    user_turn = session.messages[-2]
    return {
        "user": user_turn.model_dump(mode="json"),
        "reply": reply.model_dump(mode="json"),
        "fallback": reply.content == engine.completion.fallback,
    }


@router.delete("/{session_id}")
async def close_session(session_id: str, engine: Engine = Depends(get_engine)):
    if not engine.close_session(session_id):
        raise HTTPException(404, "Session not found.")
    return {"closed": True}
