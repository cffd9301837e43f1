"""Shared Pydantic models used across the engine."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from affect_chat.affect.models import FacialEmotion, VocalTone

# ── Enums ─────────────────────────────────────────────────────

class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class AgeGroup(str, Enum):
    """Declared age bracket of the user; selects the prompt's tone modifier."""
    CHILDREN = "children"
    TEENAGERS = "teenagers"
    ADULTS = "adults"


# ── Conversation ──────────────────────────────────────────────

class Mood(BaseModel):
    """Affect detected while the user composed a turn."""
    model_config = ConfigDict(frozen=True)

    emotion: FacialEmotion | None = None
    tone: VocalTone | None = None

    @property
    def is_empty(self) -> bool:
        return self.emotion is None and self.tone is None


class Message(BaseModel):
    """One conversation turn.  Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: Role
    content: str
    mood: Mood | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
