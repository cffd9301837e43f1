"""Signal stabiliser — turns noisy per-frame affect samples into a verdict.

A classifier polled every few hundred milliseconds flickers between labels.
The stabiliser keeps a short FIFO of admitted samples and only reports a
label once it holds a majority of that window.

Rules
-----
1. Samples below the confidence floor are dropped before admission.
2. The window holds at most ``window_size`` samples; the oldest is evicted.
3. No verdict until ``min_samples`` samples have been admitted.
4. The most frequent label wins; ties go to the label seen most recently.
5. The winner needs ``count >= ceil(len(window) / 2)``.
6. Reported confidence is the mean over the *whole* window.
"""

from __future__ import annotations

import math
from collections import Counter, deque

import structlog

from affect_chat.affect.models import AffectSample, StableAffect

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_SIZE = 5
DEFAULT_MIN_SAMPLES = 3
DEFAULT_MIN_CONFIDENCE = 0.2


class SignalStabilizer:
    """Bounded majority-vote window over affect samples of one modality.

    Parameters
    ----------
    window_size : int
        Maximum number of admitted samples kept (FIFO).
    min_samples : int
        Samples required before any verdict is emitted.
    min_confidence : float
        Samples strictly below this confidence are discarded.
    name : str
        Label used in log events (usually the modality).
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        min_samples: int = DEFAULT_MIN_SAMPLES,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        name: str = "affect",
    ) -> None:
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        if not 1 <= min_samples <= window_size:
            raise ValueError("min_samples must be between 1 and window_size")
        self._window: deque[AffectSample] = deque(maxlen=window_size)
        self._min_samples = min_samples
        self._min_confidence = min_confidence
        self._name = name

    # ── Producer side ─────────────────────────────────────────

    def push(self, sample: AffectSample) -> None:
        """Admit a sample, evicting the oldest one when the window is full."""
        if sample.confidence < self._min_confidence:
            logger.debug(
                "stabilizer.sample_dropped",
                stabilizer=self._name,
                label=sample.label.value,
                confidence=round(sample.confidence, 3),
            )
            return
        self._window.append(sample)

    def clear(self) -> None:
        """Forget every admitted sample; the verdict goes back to unknown."""
        self._window.clear()

    # ── Verdict ───────────────────────────────────────────────

    def current(self) -> StableAffect | None:
        """Return the stable verdict, or ``None`` while the signal is unknown."""
        size = len(self._window)
        if size < self._min_samples:
            return None

        counts = Counter(s.label for s in self._window)
        winner = None
        best = 0
        # Oldest → newest with >=, so the latest tie participant wins.
        for sample in self._window:
            count = counts[sample.label]
            if count >= best:
                best = count
                winner = sample.label

        if winner is None or best < math.ceil(size / 2):
            return None

        mean_confidence = sum(s.confidence for s in self._window) / size
        return StableAffect(label=winner, confidence=mean_confidence, sample_count=size)

    # ── Read-only views ───────────────────────────────────────

    def samples(self) -> tuple[AffectSample, ...]:
        """Admitted samples, oldest first."""
        return tuple(self._window)

    def __len__(self) -> int:
        return len(self._window)

    @property
    def window_size(self) -> int:
        return self._window.maxlen or 0
