"""Tests for the conversation session."""

from __future__ import annotations

import asyncio

import pytest

from affect_chat.affect.models import FacialEmotion, VocalTone
from affect_chat.affect.tracker import AffectTracker
from affect_chat.agent.completion import CompletionClient
from affect_chat.agent.prompts import AGE_MODIFIERS
from affect_chat.agent.session import ConversationSession, SessionBusyError
from affect_chat.models import AgeGroup, Role

from conftest import FALLBACK, FailingChatBackend, ScriptedChatBackend, make_sample


def _roles_and_text(session: ConversationSession) -> list[tuple[Role, str]]:
    return [(m.role, m.content) for m in session.messages]


async def test_turns_alternate_in_order(session: ConversationSession):
    assert (await session.send("A")).content == "r1"
    assert (await session.send("B")).content == "r2"
    assert _roles_and_text(session) == [
        (Role.USER, "A"),
        (Role.ASSISTANT, "r1"),
        (Role.USER, "B"),
        (Role.ASSISTANT, "r2"),
    ]
    assert not session.processing


async def test_send_while_processing_is_rejected():
    gate = asyncio.Event()
    backend = ScriptedChatBackend("slow", gate=gate)
    session = ConversationSession(CompletionClient(backend, timeout=1.0, fallback=FALLBACK))

    first = asyncio.create_task(session.send("one"))
    await asyncio.sleep(0)
    assert session.processing

    assert await session.send("two") is None
    with pytest.raises(SessionBusyError):
        await session.send_or_raise("three")

    gate.set()
    assert (await first).content == "slow"
    assert _roles_and_text(session) == [(Role.USER, "one"), (Role.ASSISTANT, "slow")]
    assert backend.prompts and len(backend.prompts) == 1


async def test_mood_is_recorded_on_user_turns_only(session: ConversationSession):
    await session.send("hi", emotion=FacialEmotion.SAD, tone=VocalTone.ANXIOUS)
    user, assistant = session.messages
    assert user.mood.emotion == FacialEmotion.SAD
    assert user.mood.tone == VocalTone.ANXIOUS
    assert assistant.mood is None


async def test_blank_text_is_ignored(session: ConversationSession, scripted_backend):
    assert await session.send("   ") is None
    assert session.messages == ()
    assert scripted_backend.prompts == []
    with pytest.raises(ValueError):
        await session.send_or_raise("")


async def test_age_change_applies_to_next_turn(session: ConversationSession, scripted_backend):
    await session.send("first")
    session.age_group = AgeGroup.CHILDREN
    await session.send("second")
    modifier = AGE_MODIFIERS[AgeGroup.CHILDREN]
    assert modifier not in scripted_backend.prompts[0]
    assert modifier in scripted_backend.prompts[1]


async def test_fallback_reply_completes_the_turn():
    session = ConversationSession(
        CompletionClient(FailingChatBackend(), timeout=1.0, fallback=FALLBACK)
    )
    reply = await session.send("hello")
    assert reply.content == FALLBACK
    assert _roles_and_text(session) == [(Role.USER, "hello"), (Role.ASSISTANT, FALLBACK)]
    assert not session.processing
    # the session stays usable
    assert (await session.send("again")).content == FALLBACK


async def test_prompt_history_excludes_current_message(session, scripted_backend):
    await session.send("alpha")
    await session.send("beta")
    second = scripted_backend.prompts[1]
    history = second.split("Conversation history (most recent first):", 1)[1]
    history = history.split("\n\nUSER: beta", 1)[0]
    assert "USER: alpha" in history
    assert "ASSISTANT: r1" in history
    assert "beta" not in history


async def test_greeting_is_first_message(completion: CompletionClient):
    session = ConversationSession(completion, initial_message="Hi, how are you feeling?")
    (greeting,) = session.messages
    assert greeting.role == Role.ASSISTANT
    assert greeting.content == "Hi, how are you feeling?"


async def test_send_or_raise_returns_reply(session: ConversationSession):
    reply = await session.send_or_raise("hey")
    assert reply.role == Role.ASSISTANT
    assert reply.content == "r1"


async def test_clear_drops_history(session: ConversationSession):
    await session.send("hey")
    session.clear()
    assert session.messages == ()


async def test_each_session_owns_a_tracker(completion: CompletionClient):
    tracker = AffectTracker()
    injected = ConversationSession(completion, tracker=tracker)
    first = ConversationSession(completion)
    second = ConversationSession(completion)

    assert injected.tracker is tracker
    assert first.tracker is not second.tracker
    first.tracker.push(make_sample("sad", 0.9))
    assert second.tracker.recent_samples() == []
