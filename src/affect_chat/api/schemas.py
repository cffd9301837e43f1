"""Request / response models shared across API route modules."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from affect_chat.affect.models import FacialEmotion, Modality, VocalTone
from affect_chat.models import AgeGroup


class SampleRequest(BaseModel):
    """One classifier output reported by a capture widget."""
    modality: Modality = Modality.FACIAL
    label: str
    confidence: float = Field(ge=0.0, le=1.0)
    captured_at: datetime | None = None


class SessionRequest(BaseModel):
    age_group: AgeGroup | None = None
    greeting: str | None = None


class AgeGroupRequest(BaseModel):
    age_group: AgeGroup


class ChatRequest(BaseModel):
    """A user turn.  Omitted affect falls back to the stable tracker verdicts."""
    text: str = Field(min_length=1)
    emotion: FacialEmotion | None = None
    tone: VocalTone | None = None
    use_detected_affect: bool = True
