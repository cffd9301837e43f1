"""Per-session affect intake, stable verdicts and reporting routes."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from affect_chat.affect.models import AffectSample, Modality, StableAffect
from affect_chat.api.deps import get_engine, lookup_session
from affect_chat.api.schemas import SampleRequest
from affect_chat.engine import Engine

router = APIRouter(prefix="/sessions/{session_id}/affect", tags=["affect"])


def _verdict(v: StableAffect | None) -> dict | None:
    if v is None:
        return None
    return {
        "label": v.label.value,
        "confidence": round(v.confidence, 3),
        "sample_count": v.sample_count,
    }


@router.post("/samples", status_code=201)
async def ingest_sample(
    session_id: str,
    req: SampleRequest,
    engine: Engine = Depends(get_engine),
):
    """Queue one classifier output for this session's stabiliser.

    Samples are consumed in arrival order.  Low-confidence samples are
    accepted here and silently dropped by the stabiliser; a label outside
    the modality's vocabulary is a 422.
    """
    lookup_session(engine, session_id)
    try:
        sample = AffectSample(
            modality=req.modality,
            label=req.label,
            confidence=req.confidence,
            captured_at=req.captured_at or datetime.utcnow(),
        )
    except ValidationError as exc:
        raise RequestValidationError(
            exc.errors(include_url=False, include_context=False, include_input=False)
        ) from exc
    await engine.publish_sample(session_id, sample)
    return {"queued": True, "modality": sample.modality.value, "label": sample.label.value}


@router.get("/current")
async def current_affect(session_id: str, engine: Engine = Depends(get_engine)):
    """Stable verdict per modality; ``null`` means unknown."""
    tracker = lookup_session(engine, session_id).tracker
    return {m.value: _verdict(v) for m, v in tracker.snapshot().items()}


@router.get("/history")
async def affect_history(
    session_id: str,
    modality: Modality | None = Query(None),
    limit: int = Query(50, ge=1, le=1000),
    engine: Engine = Depends(get_engine),
):
    """Recent admitted samples, oldest first."""
    tracker = lookup_session(engine, session_id).tracker
    return [s.model_dump(mode="json") for s in tracker.recent_samples(modality, limit=limit)]


@router.get("/events")
async def affect_events(
    session_id: str,
    limit: int = Query(200, ge=1, le=1000),
    engine: Engine = Depends(get_engine),
):
    """Facial and vocal history merged into the facial vocabulary."""
    tracker = lookup_session(engine, session_id).tracker
    return [e.model_dump(mode="json") for e in tracker.emotion_events(limit=limit)]


@router.delete("")
async def reset_affect(
    session_id: str,
    modality: Modality | None = Query(None),
    engine: Engine = Depends(get_engine),
):
    """Reset this session's stabilisation windows to unknown."""
    lookup_session(engine, session_id).tracker.clear(modality)
    return {"cleared": [m.value for m in ([modality] if modality else list(Modality))]}
