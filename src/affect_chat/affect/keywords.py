"""Keyword heuristic for text-only turns (no camera, no microphone)."""

from __future__ import annotations

from affect_chat.affect.models import FacialEmotion

# Checked in order; the first group with a hit wins.
_KEYWORDS: list[tuple[FacialEmotion, tuple[str, ...]]] = [
    (FacialEmotion.HAPPY, ("happy", "glad", "good", "excited")),
    (FacialEmotion.SAD, ("sad", "upset", "depressed", "unhappy")),
    (FacialEmotion.SURPRISED, ("wow", "whoa", "amazing", "shocked")),
    (FacialEmotion.ANGRY, ("angry", "mad", "furious", "annoyed")),
]


def detect_text_emotion(text: str) -> FacialEmotion | None:
    """Guess an emotion from plain keywords in *text*.

    Substring matching, case-insensitive.  Returns ``None`` when nothing
    matches, so callers never mistake "no signal" for "neutral".
    """
    lowered = text.lower()
    for emotion, words in _KEYWORDS:
        if any(word in lowered for word in words):
            return emotion
    return None
