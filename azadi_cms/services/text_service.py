"""Text service used to backfill missing locale text.

Translation is best-effort: any failure, a missing credential, or an empty
reply hands back the input text unchanged. Nothing here raises to callers.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from azadi_cms.db.schemas import Locale
from azadi_cms.utils.env import env_float, env_str

logger = logging.getLogger(__name__)

_LANGUAGE_NAMES = {"en": "English", "bn": "Bengali"}


@dataclass(frozen=True)
class TextServiceConfig:
    api_key: Optional[str] = None
    model_name: str = "gemini-2.5-flash"
    timeout_seconds: float = 20.0

    @classmethod
    def from_env(cls) -> "TextServiceConfig":
        return cls(
            api_key=env_str("LLM_API_KEY"),
            model_name=env_str("LLM_MODEL_NAME", "gemini-2.5-flash"),
            timeout_seconds=env_float("LLM_TIMEOUT_SECONDS", 20.0, minimum=0.1),
        )

    @property
    def is_enabled(self) -> bool:
        return bool(self.api_key)


class BaseTextService:
    is_enabled: bool = False

    async def translate(self, text: str, target_locale: Locale) -> str:
        raise NotImplementedError


class NoopTextService(BaseTextService):
    """Stand-in when no credential is configured; returns text unchanged."""

    async def translate(self, text: str, target_locale: Locale) -> str:
        return text


def build_translation_prompt(text: str, target_locale: Locale) -> str:
    language = _LANGUAGE_NAMES[target_locale]
    return (
        f"Translate this text to {language}. Keep the tone respectful and accurate. "
        f"Reply with the translation only. Text: \"{text}\""
    )


def clean_reply(reply: Optional[str]) -> str:
    cleaned = (reply or "").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1].strip()
    return cleaned


class GeminiTextService(BaseTextService):
    is_enabled = True

    def __init__(self, config: TextServiceConfig, client: Any = None) -> None:
        self.config = config
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    async def translate(self, text: str, target_locale: Locale) -> str:
        if not text or not text.strip():
            return text
        try:
            client = self._get_client()
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.config.model_name,
                    contents=build_translation_prompt(text, target_locale),
                    config={"temperature": 0.2},
                ),
                timeout=self.config.timeout_seconds,
            )
        except Exception as exc:
            logger.warning("Translation to %s failed; keeping source text: %s", target_locale, exc)
            return text
        translated = clean_reply(getattr(response, "text", None))
        return translated or text


def build_text_service(config: Optional[TextServiceConfig] = None) -> BaseTextService:
    config = config or TextServiceConfig.from_env()
    if not config.is_enabled:
        logger.warning("LLM_API_KEY is not set. Translation backfill will leave text unchanged.")
        return NoopTextService()
    return GeminiTextService(config)


_text_service: Optional[BaseTextService] = None


def get_text_service() -> BaseTextService:
    global _text_service
    if _text_service is None:
        _text_service = build_text_service()
    return _text_service


def reset_text_service_for_tests() -> None:  # pragma: no cover - used in tests
    global _text_service
    _text_service = None
