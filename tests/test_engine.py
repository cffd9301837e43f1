"""Tests for the engine wiring and the LangChain chat backend."""

from __future__ import annotations

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from affect_chat.affect.models import FacialEmotion, Modality, VocalTone
from affect_chat.agent.llm import BackendUnavailableError, LangChainChatBackend
from affect_chat.backends.base import BackendId
from affect_chat.backends.lifecycle import BackendState
from affect_chat.config import Settings
from affect_chat.engine import Engine
from affect_chat.models import AgeGroup, Role

from conftest import FailingChatBackend, FakeFacialClassifier, ScriptedChatBackend, make_sample


@pytest.fixture
async def engine():
    eng = Engine(Settings(greeting_message="Hello!"), chat_backend=ScriptedChatBackend("fine"))
    await eng.start()
    yield eng
    await eng.stop()


# ── Engine ───────────────────────────────────────────────────


async def test_start_reports_backend_states():
    eng = Engine(
        Settings(),
        chat_backend=FailingChatBackend(fail_load=True),
        facial_classifier=FakeFacialClassifier(),
    )
    states = await eng.start()
    await eng.stop()
    assert states == {
        BackendId.CONVERSATION: BackendState.FAILED,
        BackendId.FACIAL: BackendState.READY,
    }
    assert not eng.completion.available


async def test_sessions_use_settings_defaults(engine: Engine):
    session = engine.create_session()
    assert session.age_group == AgeGroup.ADULTS
    assert [m.content for m in session.messages] == ["Hello!"]
    assert engine.get_session(session.id) is session
    assert engine.session_count == 1

    assert engine.close_session(session.id)
    assert not engine.close_session(session.id)
    assert engine.get_session(session.id) is None


async def test_explicit_affect_wins(engine: Engine):
    session = engine.create_session()
    for _ in range(3):
        session.tracker.push(make_sample("sad", 0.9))
    emotion, tone = engine.resolve_affect(session, "hi", FacialEmotion.HAPPY, VocalTone.CALM)
    assert (emotion, tone) == (FacialEmotion.HAPPY, VocalTone.CALM)


async def test_stable_verdicts_fill_missing_affect(engine: Engine):
    session = engine.create_session()
    for _ in range(3):
        session.tracker.push(make_sample("sad", 0.9))
        session.tracker.push(make_sample("anxious", 0.9, Modality.VOCAL))
    assert engine.resolve_affect(session, "hi") == (FacialEmotion.SAD, VocalTone.ANXIOUS)


async def test_keyword_heuristic_is_last_resort(engine: Engine):
    session = engine.create_session()
    assert engine.resolve_affect(session, "I feel so depressed") == (FacialEmotion.SAD, None)
    assert engine.resolve_affect(session, "I feel so depressed", use_detected=False) == (None, None)


async def test_sessions_get_separate_trackers(engine: Engine):
    first = engine.create_session()
    second = engine.create_session()
    assert first.tracker is not second.tracker

    for _ in range(3):
        await engine.publish_sample(first.id, make_sample("sad", 0.9))
    await engine.stream.drain()

    assert first.tracker.stable_emotion() == FacialEmotion.SAD
    assert second.tracker.stable_emotion() is None
    assert engine.resolve_affect(second, "hi") == (None, None)


async def test_sample_for_closed_session_is_dropped(engine: Engine):
    session = engine.create_session()
    engine.close_session(session.id)
    await engine.publish_sample(session.id, make_sample("happy", 0.9))
    await engine.stream.drain()
    assert engine.stream.processed_total == 1
    assert session.tracker.recent_samples() == []


async def test_send_records_resolved_mood(engine: Engine):
    session = engine.create_session(AgeGroup.TEENAGERS, greeting="")
    reply = await engine.send(session, "I'm so happy today")
    assert reply.content == "fine"
    user = session.messages[0]
    assert user.role == Role.USER
    assert user.mood.emotion == FacialEmotion.HAPPY


# ── LangChain backend ────────────────────────────────────────


async def test_langchain_backend_without_key_fails_to_load():
    backend = LangChainChatBackend(Settings(openai_api_key=""))
    with pytest.raises(BackendUnavailableError):
        await backend.load()
    with pytest.raises(BackendUnavailableError):
        await backend.chat("hello")


async def test_langchain_backend_with_key_builds_client():
    backend = LangChainChatBackend(Settings(openai_api_key="sk-test", openai_model="gpt-4o-mini"))
    await backend.load()
    assert backend._llm is not None


async def test_langchain_backend_wraps_model_reply():
    backend = LangChainChatBackend(Settings(), llm=FakeListChatModel(responses=["I hear you."]))
    await backend.load()
    reply = await backend.chat("rough day")
    assert reply.message.content == "I hear you."
    assert reply.message.role == Role.ASSISTANT
