"""Context builder — renders one prompt string from a turn's inputs.

The builder is a pure function: no I/O, and identical parameters always
produce the identical prompt.  Segments, in order:

1. Persona instructions (always)
2. Age-group modifier (children / teenagers only)
3. Detected-affect hints (only when an emotion or tone is known)
4. Up to ``history_limit`` previous turns, most recent first
5. The new user message and the assistant cue
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from affect_chat.affect.models import FacialEmotion, VocalTone
from affect_chat.agent.prompts import (
    AGE_MODIFIERS,
    DETECTED_STATE_HEADER,
    DETECTION_DISCRETION,
    FACIAL_HINT,
    HISTORY_HEADER,
    SYSTEM_PROMPT,
    VOCAL_HINT,
)
from affect_chat.models import AgeGroup, Message, Role

DEFAULT_HISTORY_LIMIT = 10


class HistoryEntry(BaseModel):
    role: Role
    content: str


class ContextParams(BaseModel):
    """Validated inputs of :func:`build_prompt`.

    Affect hints are optional; ``None`` means *unknown* and produces no
    hint line.  ``history`` is chronological (oldest first).
    """

    message: str
    age_group: AgeGroup = AgeGroup.ADULTS
    detected_emotion: FacialEmotion | None = None
    detected_tone: VocalTone | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    history_limit: int = Field(DEFAULT_HISTORY_LIMIT, ge=0)

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v

    @classmethod
    def from_messages(
        cls,
        message: str,
        history: list[Message] | tuple[Message, ...],
        **kwargs,
    ) -> ContextParams:
        """Build params from stored :class:`Message` objects."""
        entries = [HistoryEntry(role=m.role, content=m.content) for m in history]
        return cls(message=message, history=entries, **kwargs)


def build_prompt(params: ContextParams) -> str:
    """Render the prompt for one assistant turn."""
    prompt = SYSTEM_PROMPT

    modifier = AGE_MODIFIERS.get(params.age_group)
    if modifier:
        prompt += f"\n{modifier}"

    if params.detected_emotion or params.detected_tone:
        prompt += f"\n\n{DETECTED_STATE_HEADER}"
        if params.detected_emotion:
            prompt += "\n" + FACIAL_HINT.format(label=params.detected_emotion.value)
        if params.detected_tone:
            prompt += "\n" + VOCAL_HINT.format(label=params.detected_tone.value)
        prompt += f"\n\n{DETECTION_DISCRETION}"

    recent = params.history[-params.history_limit:] if params.history_limit else []
    if recent:
        prompt += f"\n\n{HISTORY_HEADER}"
        for entry in reversed(recent):
            prompt += f"\n{entry.role.value.upper()}: {entry.content}"

    prompt += f"\n\nUSER: {params.message}\n\nASSISTANT:"
    return prompt
