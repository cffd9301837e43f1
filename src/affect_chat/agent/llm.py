"""LangChain-backed conversational backend."""

from __future__ import annotations

from typing import Any

import structlog
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from affect_chat.backends.base import ChatBackend, ChatReply, ReplyMessage
from affect_chat.config import Settings, get_settings

logger = structlog.get_logger(__name__)


class BackendUnavailableError(RuntimeError):
    """Raised by :meth:`LangChainChatBackend.load` when it cannot be used."""


class LangChainChatBackend(ChatBackend):
    """Conversational endpoint served by an OpenAI-compatible chat model.

    The model client is created lazily in :meth:`load`, which the lifecycle
    manager calls once.  Without an API key the load fails and the engine
    runs in fallback-only mode.
    """

    def __init__(self, settings: Settings | None = None, llm: Any | None = None) -> None:
        self._settings = settings or get_settings()
        self._llm = llm

    async def load(self) -> None:
        if self._llm is not None:
            return
        s = self._settings
        if not s.openai_api_key:
            raise BackendUnavailableError("No API key configured for the conversational model.")
        kwargs: dict[str, Any] = {
            "model": s.openai_model,
            "api_key": s.openai_api_key,
            "temperature": s.llm_temperature,
            # The completion client owns the deadline; no hidden retries here.
            "max_retries": 0,
        }
        if s.openai_base_url:
            kwargs["base_url"] = s.openai_base_url
        self._llm = ChatOpenAI(**kwargs)
        logger.info("llm.initialised", model=s.openai_model)

    async def chat(self, prompt: str) -> ChatReply:
        if self._llm is None:
            raise BackendUnavailableError("Chat backend used before load().")
        result = await self._llm.ainvoke([HumanMessage(content=prompt)])
        content = result.content if isinstance(result.content, str) else str(result.content)
        return ChatReply(message=ReplyMessage(content=content))
