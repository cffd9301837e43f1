"""Conversation session — single-flight turns over an append-only history."""

from __future__ import annotations

import uuid

import structlog

from affect_chat.affect.models import FacialEmotion, VocalTone
from affect_chat.affect.tracker import AffectTracker
from affect_chat.agent.completion import CompletionClient
from affect_chat.agent.context import DEFAULT_HISTORY_LIMIT, ContextParams, build_prompt
from affect_chat.models import AgeGroup, Message, Mood, Role

logger = structlog.get_logger(__name__)


class SessionBusyError(RuntimeError):
    """A turn was attempted while another one is still being processed."""


class ConversationSession:
    """Ordered message history plus the ``processing`` gate.

    Exactly one turn may be in flight.  :meth:`send` called while
    ``processing`` is true is rejected as a no-op, so histories never
    interleave.  A fallback reply from the completion client counts as a
    completed turn.

    Parameters
    ----------
    completion : CompletionClient
        Used to obtain every assistant reply.
    age_group : AgeGroup
        Initial age bracket; changes apply from the next turn.
    initial_message : str
        Optional greeting appended as the first assistant message.
    history_limit : int
        How many previous turns are rendered into each prompt.
    tracker : AffectTracker | None
        This session's own affect windows.  Samples from one user never
        reach another session's tracker.
    """

    def __init__(
        self,
        completion: CompletionClient,
        age_group: AgeGroup = AgeGroup.ADULTS,
        *,
        initial_message: str = "",
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        session_id: str | None = None,
        tracker: AffectTracker | None = None,
    ) -> None:
        self.id = session_id or str(uuid.uuid4())
        self.tracker = tracker or AffectTracker()
        self._completion = completion
        self._age_group = AgeGroup(age_group)
        self._history_limit = history_limit
        self._messages: list[Message] = []
        self._processing = False
        self._log = logger.bind(session_id=self.id)

        if initial_message.strip():
            self._messages.append(Message(role=Role.ASSISTANT, content=initial_message))

    # ── State ─────────────────────────────────────────────────

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def processing(self) -> bool:
        return self._processing

    @property
    def age_group(self) -> AgeGroup:
        return self._age_group

    @age_group.setter
    def age_group(self, value: AgeGroup) -> None:
        self._age_group = AgeGroup(value)
        self._log.info("session.age_group_changed", age_group=self._age_group.value)

    # ── Turns ─────────────────────────────────────────────────

    async def send(
        self,
        user_text: str,
        emotion: FacialEmotion | None = None,
        tone: VocalTone | None = None,
    ) -> Message | None:
        """Run one turn and return the assistant message.

        Returns ``None`` without touching the history when the text is blank
        or another turn is still in flight.
        """
        if self._processing:
            self._log.warning("session.send_rejected", reason="processing")
            return None
        if not user_text.strip():
            self._log.debug("session.send_rejected", reason="blank_message")
            return None

        self._processing = True
        try:
            history = list(self._messages)
            mood = Mood(emotion=emotion, tone=tone)
            self._messages.append(Message(role=Role.USER, content=user_text, mood=mood))

            prompt = build_prompt(
                ContextParams.from_messages(
                    user_text,
                    history,
                    age_group=self._age_group,
                    detected_emotion=emotion,
                    detected_tone=tone,
                    history_limit=self._history_limit,
                )
            )
            reply_text = await self._completion.complete(prompt)

            reply = Message(role=Role.ASSISTANT, content=reply_text)
            self._messages.append(reply)
            self._log.info(
                "session.turn_completed",
                turns=len(self._messages),
                emotion=emotion.value if emotion else None,
                tone=tone.value if tone else None,
                fallback=reply_text == self._completion.fallback,
            )
            return reply
        finally:
            self._processing = False

    async def send_or_raise(
        self,
        user_text: str,
        emotion: FacialEmotion | None = None,
        tone: VocalTone | None = None,
    ) -> Message:
        """Like :meth:`send` but raise instead of silently rejecting."""
        if self._processing:
            raise SessionBusyError(f"Session {self.id} is already processing a turn.")
        if not user_text.strip():
            raise ValueError("message must not be blank")
        reply = await self.send(user_text, emotion, tone)
        if reply is None:
            raise SessionBusyError(f"Session {self.id} rejected the turn.")
        return reply

    def clear(self) -> None:
        """Drop every message (start a new conversation)."""
        if self._processing:
            raise SessionBusyError(f"Session {self.id} is processing; cannot clear.")
        self._messages.clear()
        self._log.info("session.cleared")
