"""Engine — owns and wires every long-lived component.

One :class:`Engine` holds the lifecycle manager, the affect input stream,
the completion client and the open conversation sessions.  Every session
owns its own :class:`AffectTracker`, so affect detected for one user never
colours another user's conversation.  The FastAPI lifespan and the terminal
chat both build exactly one engine.
"""

from __future__ import annotations

import asyncio

import structlog

from affect_chat.affect.keywords import detect_text_emotion
from affect_chat.affect.models import AffectSample, FacialEmotion, ScopedSample, VocalTone
from affect_chat.affect.tracker import AffectTracker
from affect_chat.agent.completion import CompletionClient
from affect_chat.agent.llm import LangChainChatBackend
from affect_chat.agent.session import ConversationSession
from affect_chat.backends.base import BackendId, ChatBackend, FacialClassifier, VocalClassifier
from affect_chat.backends.lifecycle import BackendState, ModelLifecycleManager
from affect_chat.config import Settings, get_settings
from affect_chat.models import AgeGroup, Message
from affect_chat.streaming.pipeline import AffectStream

logger = structlog.get_logger(__name__)


class Engine:
    """Composition root of the affect-chat engine.

    Integration::

        engine = Engine()
        await engine.start()
        session = engine.create_session(AgeGroup.TEENAGERS)
        await engine.publish_sample(session.id, sample)
        reply = await engine.send(session, "I had a rough day")
        await engine.stop()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        chat_backend: ChatBackend | None = None,
        facial_classifier: FacialClassifier | None = None,
        vocal_classifier: VocalClassifier | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        s = self.settings

        self.lifecycle = ModelLifecycleManager()
        self.chat_backend = chat_backend or LangChainChatBackend(s)
        self.lifecycle.register_backend(self.chat_backend)
        self._facial = facial_classifier
        self._vocal = vocal_classifier
        for classifier in (facial_classifier, vocal_classifier):
            if classifier is not None:
                self.lifecycle.register_backend(classifier)

        self.completion = CompletionClient(
            self.chat_backend,
            self.lifecycle,
            timeout=s.completion_timeout_seconds,
            fallback=s.completion_fallback_message,
        )
        self.stream = AffectStream()
        self.stream.add_consumer(self._on_sample)

        self._sessions: dict[str, ConversationSession] = {}
        self._stream_task: asyncio.Task | None = None

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> dict[BackendId, BackendState]:
        """Load every backend and start draining the affect stream.

        Failed backends are reported in the returned mapping; the engine
        still starts and runs in degraded mode.
        """
        states = await self.lifecycle.ensure_all_loaded()
        degraded = [b.value for b, st in states.items() if st == BackendState.FAILED]
        if degraded:
            logger.warning("engine.degraded", failed_backends=degraded)
        self._stream_task = asyncio.create_task(self.stream.start())
        logger.info("engine.started", backends={b.value: st.value for b, st in states.items()})
        return states

    async def stop(self) -> None:
        await self.stream.stop()
        if self._stream_task:
            self._stream_task.cancel()
            try:
                await self._stream_task
            except asyncio.CancelledError:
                pass
            self._stream_task = None
        logger.info("engine.stopped", sessions=len(self._sessions))

    # ── Affect intake ─────────────────────────────────────────

    def new_tracker(self) -> AffectTracker:
        """A fresh tracker sharing the engine's classifiers and lifecycle."""
        s = self.settings
        return AffectTracker(
            self.lifecycle,
            self._facial,
            self._vocal,
            window_size=s.stabilizer_window_size,
            min_samples=s.stabilizer_min_samples,
            min_confidence=s.stabilizer_min_confidence,
            history_size=s.affect_history_size,
        )

    async def publish_sample(self, session_id: str, sample: AffectSample) -> None:
        """Queue *sample* for the tracker of session *session_id*."""
        await self.stream.publish(ScopedSample(session_id=session_id, sample=sample))

    async def _on_sample(self, item: ScopedSample) -> None:
        session = self._sessions.get(item.session_id)
        if session is None:
            # Closed between publish and delivery.
            logger.debug("engine.sample_for_unknown_session", session_id=item.session_id)
            return
        session.tracker.push(item.sample)

    # ── Sessions ──────────────────────────────────────────────

    def create_session(
        self,
        age_group: AgeGroup | None = None,
        greeting: str | None = None,
    ) -> ConversationSession:
        session = ConversationSession(
            self.completion,
            age_group or AgeGroup(self.settings.default_age_group),
            initial_message=self.settings.greeting_message if greeting is None else greeting,
            history_limit=self.settings.history_limit,
            tracker=self.new_tracker(),
        )
        self._sessions[session.id] = session
        logger.info("engine.session_created", session_id=session.id, age_group=session.age_group.value)
        return session

    def get_session(self, session_id: str) -> ConversationSession | None:
        return self._sessions.get(session_id)

    def close_session(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    # ── Turns ─────────────────────────────────────────────────

    def resolve_affect(
        self,
        session: ConversationSession,
        text: str,
        emotion: FacialEmotion | None = None,
        tone: VocalTone | None = None,
        use_detected: bool = True,
    ) -> tuple[FacialEmotion | None, VocalTone | None]:
        """Pick the affect hints for a turn on *session*.

        Explicit values win; otherwise the stable verdicts of the session's
        own tracker; for the emotion, finally the keyword heuristic on the
        text (if enabled).
        """
        if use_detected:
            emotion = emotion or session.tracker.stable_emotion()
            tone = tone or session.tracker.stable_tone()
            if emotion is None and self.settings.text_emotion_keywords:
                emotion = detect_text_emotion(text)
        return emotion, tone

    async def send(
        self,
        session: ConversationSession,
        text: str,
        emotion: FacialEmotion | None = None,
        tone: VocalTone | None = None,
        use_detected: bool = True,
    ) -> Message | None:
        """Resolve the turn's affect hints and run it on *session*."""
        emotion, tone = self.resolve_affect(session, text, emotion, tone, use_detected)
        return await session.send(text, emotion, tone)
