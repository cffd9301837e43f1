"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_FALLBACK_MESSAGE = (
    "I'm having trouble connecting right now. "
    "Could you please try again in a moment?"
)


class Settings(BaseSettings):
    """All runtime configuration for the affect-chat engine.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat
    ``AFFECT_CHAT_`` namespace (stripped automatically by *pydantic-settings*).
    """

    model_config = SettingsConfigDict(
        env_prefix="AFFECT_CHAT_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── LLM ───────────────────────────────────────────────────
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = ""  # empty → provider default
    llm_temperature: float = 0.7

    # ── Completion client ─────────────────────────────────────
    completion_timeout_seconds: float = 15.0
    completion_fallback_message: str = DEFAULT_FALLBACK_MESSAGE

    # ── Affect stabilisation ──────────────────────────────────
    stabilizer_window_size: int = 5
    stabilizer_min_samples: int = 3
    stabilizer_min_confidence: float = 0.2
    affect_history_size: int = 200  # bounded raw-sample history for stats views
    facial_poll_interval_ms: int = 500

    # ── Conversation ──────────────────────────────────────────
    history_limit: int = 10
    default_age_group: Literal["children", "teenagers", "adults"] = "adults"
    greeting_message: str = ""
    text_emotion_keywords: bool = True  # keyword fallback for text-only turns

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = int(os.getenv("PORT", "8000"))
    cors_origins: str = "*"  # comma-separated origins, or "*" for all

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
