"""Affect stabilisation — debounced emotional-state signals from noisy classifiers.

This package turns raw facial-expression and vocal-tone classifier outputs
into the affect hints that accompany each conversation turn.

Architecture
------------
1. **Models** (`models.py`)
   - Facial and vocal label vocabularies, and the vocal → facial mapping
   - Immutable raw samples and derived stable verdicts

2. **Stabiliser** (`stabilizer.py`)
   - Bounded FIFO window per modality
   - Confidence floor, minimum sample count, majority quorum
   - Recency tie-break, mean-of-window confidence

3. **Tracker** (`tracker.py`)
   - One stabiliser per modality
   - Classifier invocation with graceful degradation
   - Bounded, read-only sample history for statistics views

4. **Sources** (`sources.py`) and **keywords** (`keywords.py`)
   - Fixed-interval polling of the facial classifier
   - Keyword heuristic for text-only turns

Confidence & limitations
------------------------
- A verdict of ``None`` means *unknown*.  Callers must never substitute a
  default label such as neutral.
- Facial and vocal windows are independent; a failed modality simply stays
  unknown while the other keeps working.
"""

from affect_chat.affect.models import (
    VOCAL_TO_FACIAL,
    AffectLabel,
    AffectSample,
    EmotionEvent,
    FacialEmotion,
    Modality,
    ScopedSample,
    StableAffect,
    VocalTone,
    to_facial,
)

__all__ = [
    "VOCAL_TO_FACIAL",
    "AffectLabel",
    "AffectSample",
    "EmotionEvent",
    "FacialEmotion",
    "Modality",
    "ScopedSample",
    "StableAffect",
    "VocalTone",
    "to_facial",
]
