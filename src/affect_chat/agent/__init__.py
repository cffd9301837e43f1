"""Conversation engine — context building, completion, and session state."""

from affect_chat.agent.completion import Completed, CompletionClient, TimedOut, race_with_timeout
from affect_chat.agent.context import ContextParams, HistoryEntry, build_prompt
from affect_chat.agent.session import ConversationSession, SessionBusyError

__all__ = [
    "Completed",
    "CompletionClient",
    "ContextParams",
    "ConversationSession",
    "HistoryEntry",
    "SessionBusyError",
    "TimedOut",
    "build_prompt",
    "race_with_timeout",
]
