"""Pydantic models for the affect stabilisation subsystem.

These models represent:
- The two closed label vocabularies (facial expression, vocal tone)
- Raw per-frame / per-utterance classifier samples
- The debounced, confidence-qualified verdict of a stabiliser window
- Merged emotion events for statistics consumers
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ── Enums ─────────────────────────────────────────────────────


class Modality(str, Enum):
    """Which sensing channel produced a sample."""

    FACIAL = "facial"
    VOCAL = "vocal"


class FacialEmotion(str, Enum):
    """Facial-expression vocabulary (face classifier output)."""

    NEUTRAL = "neutral"
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    FEARFUL = "fearful"
    DISGUSTED = "disgusted"
    SURPRISED = "surprised"


class VocalTone(str, Enum):
    """Vocal-tone vocabulary (speech classifier output)."""

    NEUTRAL = "neutral"
    CALM = "calm"
    EXCITED = "excited"
    SAD = "sad"
    ANGRY = "angry"
    ANXIOUS = "anxious"
    UNCERTAIN = "uncertain"


AffectLabel = FacialEmotion | VocalTone

VOCABULARIES: dict[Modality, type[Enum]] = {
    Modality.FACIAL: FacialEmotion,
    Modality.VOCAL: VocalTone,
}

# Vocal tones expressed in the facial vocabulary, for merged statistics.
# The facial set has no "calm", so it folds into neutral.
VOCAL_TO_FACIAL: dict[VocalTone, FacialEmotion] = {
    VocalTone.EXCITED: FacialEmotion.HAPPY,
    VocalTone.SAD: FacialEmotion.SAD,
    VocalTone.ANGRY: FacialEmotion.ANGRY,
    VocalTone.ANXIOUS: FacialEmotion.FEARFUL,
    VocalTone.NEUTRAL: FacialEmotion.NEUTRAL,
    VocalTone.CALM: FacialEmotion.NEUTRAL,
    VocalTone.UNCERTAIN: FacialEmotion.SURPRISED,
}


def to_facial(label: AffectLabel) -> FacialEmotion:
    """Express any affect label in the facial vocabulary."""
    if isinstance(label, VocalTone):
        return VOCAL_TO_FACIAL[label]
    return FacialEmotion(label)


# ── Samples & verdicts ───────────────────────────────────────


class AffectSample(BaseModel):
    """A single raw classifier output.

    Immutable once created.  ``label`` is coerced into the vocabulary of
    ``modality``; a label outside that vocabulary is a validation error.
    """

    model_config = ConfigDict(frozen=True)

    modality: Modality = Modality.FACIAL
    label: FacialEmotion | VocalTone
    confidence: float = Field(ge=0.0, le=1.0)
    captured_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="before")
    @classmethod
    def _coerce_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("label") is not None:
            modality = Modality(data.get("modality", Modality.FACIAL))
            vocabulary = VOCABULARIES[modality]
            try:
                label = vocabulary(data["label"])
            except ValueError:
                raise ValueError(
                    f"{data['label']!r} is not a {modality.value} label; "
                    f"expected one of {[m.value for m in vocabulary]}"
                ) from None
            data = {**data, "modality": modality, "label": label}
        return data


class StableAffect(BaseModel):
    """Debounced verdict of a stabiliser window.

    ``confidence`` is the mean confidence of every sample in the window,
    not just the winning label's samples.
    """

    model_config = ConfigDict(frozen=True)

    label: FacialEmotion | VocalTone
    confidence: float = Field(ge=0.0, le=1.0)
    sample_count: int = 0


class EmotionEvent(BaseModel):
    """A raw sample re-expressed in the facial vocabulary.

    This is the shape a statistics / reporting view consumes: facial and
    vocal histories merged into one chronological stream.
    """

    timestamp: datetime
    emotion: FacialEmotion
    intensity: int = Field(ge=0, le=100)
    modality: Modality
    source_label: str


class ScopedSample(BaseModel):
    """An :class:`AffectSample` addressed to one conversation session."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    sample: AffectSample
