"""Affect tracker — per-modality stabilisers plus a bounded sample history.

This is the object the rest of the engine talks to.  It coordinates:

1. Invoking the facial / vocal classifiers (when their backends are ready)
2. Converting classifier output into validated :class:`AffectSample` objects
3. Feeding each modality's own :class:`SignalStabilizer`
4. Keeping a bounded, read-only history of admitted samples for reporting
"""

from __future__ import annotations

from collections import deque
from typing import Any

import structlog
from pydantic import ValidationError

from affect_chat.affect.models import (
    AffectSample,
    EmotionEvent,
    FacialEmotion,
    Modality,
    StableAffect,
    VocalTone,
    to_facial,
)
from affect_chat.affect.stabilizer import (
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_MIN_SAMPLES,
    DEFAULT_WINDOW_SIZE,
    SignalStabilizer,
)
from affect_chat.backends.base import (
    BackendId,
    ClassifierResult,
    FacialClassifier,
    Utterance,
    VocalClassifier,
)
from affect_chat.backends.lifecycle import ModelLifecycleManager

logger = structlog.get_logger(__name__)


class AffectTracker:
    """Owner of the facial and vocal stabilisation windows.

    Parameters
    ----------
    lifecycle : ModelLifecycleManager | None
        Consulted before each classifier call; a backend that is not ready
        contributes no samples.  ``None`` treats injected classifiers as ready.
    facial_classifier, vocal_classifier :
        Optional black-box classifiers used by :meth:`observe_frame` and
        :meth:`observe_utterance`.
    history_size : int
        Capacity of the raw-sample history exposed to statistics views.
    """

    def __init__(
        self,
        lifecycle: ModelLifecycleManager | None = None,
        facial_classifier: FacialClassifier | None = None,
        vocal_classifier: VocalClassifier | None = None,
        *,
        window_size: int = DEFAULT_WINDOW_SIZE,
        min_samples: int = DEFAULT_MIN_SAMPLES,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        history_size: int = 200,
    ) -> None:
        self._lifecycle = lifecycle
        self._facial = facial_classifier
        self._vocal = vocal_classifier
        self._min_confidence = min_confidence
        self._stabilizers: dict[Modality, SignalStabilizer] = {
            m: SignalStabilizer(
                window_size=window_size,
                min_samples=min_samples,
                min_confidence=min_confidence,
                name=m.value,
            )
            for m in Modality
        }
        self._history: deque[AffectSample] = deque(maxlen=history_size)

    # ── Sample intake ─────────────────────────────────────────

    def push(self, sample: AffectSample) -> None:
        """Feed one sample to its modality's stabiliser (arrival order)."""
        self._stabilizers[sample.modality].push(sample)
        if sample.confidence >= self._min_confidence:
            self._history.append(sample)

    async def observe_frame(self, frame: Any) -> AffectSample | None:
        """Run the facial classifier on *frame* and push the result.

        Returns the pushed sample, or ``None`` when the backend is not ready,
        no face was found, or the classifier failed.
        """
        if self._facial is None or not self._backend_ready(BackendId.FACIAL):
            return None
        try:
            result = await self._facial.detect(frame)
        except Exception:
            logger.exception("affect.facial_classifier_error")
            return None
        if result is None:
            return None
        return self._push_result(Modality.FACIAL, result)

    async def observe_utterance(self, utterance: Utterance) -> AffectSample | None:
        """Stabilise the tone of a finalised utterance.

        A tone delivered with the utterance is used as-is; otherwise the
        vocal classifier is asked, if it is ready.
        """
        if utterance.tone:
            result = ClassifierResult(label=utterance.tone, confidence=utterance.tone_confidence)
            return self._push_result(Modality.VOCAL, result)

        if self._vocal is None or not self._backend_ready(BackendId.VOCAL):
            return None
        try:
            result = await self._vocal.classify(utterance)
        except Exception:
            logger.exception("affect.vocal_classifier_error")
            return None
        if result is None:
            return None
        return self._push_result(Modality.VOCAL, result)

    def _push_result(self, modality: Modality, result: ClassifierResult) -> AffectSample | None:
        try:
            sample = AffectSample(
                modality=modality, label=result.label, confidence=result.confidence
            )
        except ValidationError as exc:
            logger.warning(
                "affect.invalid_label",
                modality=modality.value,
                label=result.label,
                error=str(exc),
            )
            return None
        self.push(sample)
        return sample

    def _backend_ready(self, backend_id: BackendId) -> bool:
        return self._lifecycle is None or self._lifecycle.is_ready(backend_id)

    # ── Verdicts ──────────────────────────────────────────────

    def current(self, modality: Modality) -> StableAffect | None:
        return self._stabilizers[modality].current()

    def snapshot(self) -> dict[Modality, StableAffect | None]:
        return {m: s.current() for m, s in self._stabilizers.items()}

    def stable_emotion(self) -> FacialEmotion | None:
        verdict = self.current(Modality.FACIAL)
        return FacialEmotion(verdict.label) if verdict else None

    def stable_tone(self) -> VocalTone | None:
        verdict = self.current(Modality.VOCAL)
        return VocalTone(verdict.label) if verdict else None

    def clear(self, modality: Modality | None = None) -> None:
        """Reset one (or every) stabilisation window to unknown.

        The reporting history is append-only and is left untouched.
        """
        targets = [modality] if modality else list(Modality)
        for m in targets:
            self._stabilizers[m].clear()
        logger.info("affect.windows_cleared", modalities=[m.value for m in targets])

    # ── Reporting accessors ───────────────────────────────────

    def window(self, modality: Modality) -> tuple[AffectSample, ...]:
        return self._stabilizers[modality].samples()

    def recent_samples(
        self,
        modality: Modality | None = None,
        limit: int | None = None,
    ) -> list[AffectSample]:
        """Admitted samples, oldest first, optionally filtered and truncated.

        ``limit`` keeps the most recent entries.
        """
        rows = [s for s in self._history if modality is None or s.modality == modality]
        if limit is not None:
            rows = rows[-limit:] if limit > 0 else []
        return rows

    def emotion_events(self, limit: int | None = None) -> list[EmotionEvent]:
        """History merged into the facial vocabulary for statistics views."""
        return [
            EmotionEvent(
                timestamp=s.captured_at,
                emotion=to_facial(s.label),
                intensity=round(s.confidence * 100),
                modality=s.modality,
                source_label=s.label.value,
            )
            for s in self.recent_samples(limit=limit)
        ]
