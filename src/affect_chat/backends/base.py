"""Abstract contracts for the black-box inference backends.

The engine never ships a concrete face or voice model.  Anything that
implements these contracts can be plugged into the
:class:`~affect_chat.affect.tracker.AffectTracker` and the
:class:`~affect_chat.backends.lifecycle.ModelLifecycleManager`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from affect_chat.models import Role


class BackendId(str, Enum):
    """Inference backends whose lifecycle is managed."""

    FACIAL = "facial"
    VOCAL = "vocal"
    CONVERSATION = "conversation"


# ── Call contracts ────────────────────────────────────────────


class ClassifierResult(BaseModel):
    """Dominant label and its confidence as returned by a classifier."""

    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class Utterance(BaseModel):
    """A finalised speech segment (emitted after the silence threshold)."""

    transcript: str
    tone: str | None = None
    tone_confidence: float = Field(0.5, ge=0.0, le=1.0)
    audio: Any | None = None


class ReplyMessage(BaseModel):
    content: str
    role: Role = Role.ASSISTANT


class ChatReply(BaseModel):
    """Response envelope of the conversational endpoint."""

    message: ReplyMessage


# ── Backends ─────────────────────────────────────────────────


class ModelBackend(ABC):
    """Anything with a one-off, possibly slow, load step."""

    backend_id: BackendId

    @abstractmethod
    async def load(self) -> None:
        """Load weights / open connections.  Raise on failure."""


class FacialClassifier(ModelBackend):
    """Facial-expression classifier polled with video frames."""

    backend_id = BackendId.FACIAL

    @abstractmethod
    async def detect(self, frame: Any) -> ClassifierResult | None:
        """Classify one frame.  ``None`` means no face was found."""


class VocalClassifier(ModelBackend):
    """Vocal-tone classifier applied once per finalised utterance."""

    backend_id = BackendId.VOCAL

    @abstractmethod
    async def classify(self, utterance: Utterance) -> ClassifierResult | None:
        """Classify the tone of an utterance.  ``None`` means no tone."""


class ChatBackend(ModelBackend):
    """Remote conversational model."""

    backend_id = BackendId.CONVERSATION

    @abstractmethod
    async def chat(self, prompt: str) -> ChatReply:
        """Send one fully rendered prompt and return the model's reply."""
