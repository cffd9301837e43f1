"""Shared pytest fixtures and fake backends."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from affect_chat.affect.models import AffectSample, Modality
from affect_chat.affect.stabilizer import SignalStabilizer
from affect_chat.agent.completion import CompletionClient
from affect_chat.agent.session import ConversationSession
from affect_chat.backends.base import (
    ChatBackend,
    ChatReply,
    ClassifierResult,
    FacialClassifier,
    ReplyMessage,
    Utterance,
    VocalClassifier,
)

FALLBACK = "fallback reply"


def make_sample(label: str, confidence: float, modality: Modality = Modality.FACIAL) -> AffectSample:
    return AffectSample(modality=modality, label=label, confidence=confidence)


# ── Fake backends ─────────────────────────────────────────────


class ScriptedChatBackend(ChatBackend):
    """Replies with the scripted strings in order and records every prompt."""

    def __init__(self, *replies: str, gate: asyncio.Event | None = None) -> None:
        self.replies = list(replies) or ["ok"]
        self.prompts: list[str] = []
        self.gate = gate
        self.loads = 0

    async def load(self) -> None:
        self.loads += 1

    async def chat(self, prompt: str) -> ChatReply:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        content = self.replies[min(len(self.prompts), len(self.replies)) - 1]
        return ChatReply(message=ReplyMessage(content=content))


class HangingChatBackend(ChatBackend):
    """Never answers."""

    def __init__(self) -> None:
        self.cancelled = False

    async def load(self) -> None:
        return None

    async def chat(self, prompt: str) -> ChatReply:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        raise AssertionError("unreachable")


class FailingChatBackend(ChatBackend):
    def __init__(self, exc: Exception | None = None, fail_load: bool = False) -> None:
        self.exc = exc or ConnectionError("network down")
        self.fail_load = fail_load
        self.calls = 0

    async def load(self) -> None:
        if self.fail_load:
            raise self.exc

    async def chat(self, prompt: str) -> ChatReply:
        self.calls += 1
        raise self.exc


class FakeFacialClassifier(FacialClassifier):
    """Returns queued results (``None`` = no face); raises queued exceptions."""

    def __init__(self, results: list[Any] | None = None) -> None:
        self.results = list(results or [])
        self.frames: list[Any] = []

    async def load(self) -> None:
        return None

    async def detect(self, frame: Any) -> ClassifierResult | None:
        self.frames.append(frame)
        item = self.results.pop(0) if self.results else None
        if isinstance(item, Exception):
            raise item
        if item is None:
            return None
        label, confidence = item
        return ClassifierResult(label=label, confidence=confidence)


class FakeVocalClassifier(VocalClassifier):
    def __init__(self, label: str = "calm", confidence: float = 0.8) -> None:
        self.label = label
        self.confidence = confidence
        self.calls = 0

    async def load(self) -> None:
        return None

    async def classify(self, utterance: Utterance) -> ClassifierResult | None:
        self.calls += 1
        return ClassifierResult(label=self.label, confidence=self.confidence)


# ── Fixtures ──────────────────────────────────────────────────


@pytest.fixture
def stabilizer() -> SignalStabilizer:
    return SignalStabilizer(window_size=5, min_samples=3, min_confidence=0.2)


@pytest.fixture
def scripted_backend() -> ScriptedChatBackend:
    return ScriptedChatBackend("r1", "r2", "r3")


@pytest.fixture
def completion(scripted_backend: ScriptedChatBackend) -> CompletionClient:
    return CompletionClient(scripted_backend, timeout=1.0, fallback=FALLBACK)


@pytest.fixture
def session(completion: CompletionClient) -> ConversationSession:
    return ConversationSession(completion)
