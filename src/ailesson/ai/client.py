"""
Text-generation service with provider abstraction.

Supports any OpenAI-compatible chat-completions API; OpenRouter is the
primary provider and Groq the fallback. Providers are tried in the order
configured, once each.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import httpx
import structlog

from ailesson.ai.parsing import (
    DEFAULT_EXPERT,
    MAX_QUIZ_QUESTIONS,
    MIN_QUIZ_QUESTIONS,
    ExpertDraft,
    LessonDraft,
    QuizDraft,
    TextGenerationError,
    parse_draft,
)
from ailesson.ai.prompts import chat_messages, expert_messages, lesson_messages, quiz_messages
from ailesson.config import get_settings

logger = structlog.get_logger()

T = TypeVar("T")


class BaseTextProvider(ABC):
    """Abstract base class for chat-completion providers."""

    name: str = "base"

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        """Return the assistant reply. Raises TextGenerationError on any failure."""
        ...


class OpenAICompatibleProvider(BaseTextProvider):
    """Chat completions over an OpenAI-compatible HTTP API."""

    def __init__(
        self,
        name: str,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def complete(
        self,
        messages: Sequence[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        if not self.api_key:
            msg = f"{self.name} API key not configured"
            raise TextGenerationError(msg)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "messages": list(messages),
                        "temperature": temperature,
                        "max_tokens": max_tokens,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            msg = f"{self.name} API error: {e.response.status_code}"
            raise TextGenerationError(msg) from e
        except (httpx.HTTPError, ValueError) as e:
            msg = f"{self.name} request failed: {e}"
            raise TextGenerationError(msg) from e

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            msg = f"{self.name} returned an unexpected payload"
            raise TextGenerationError(msg) from e
        if not content.strip():
            msg = f"{self.name} returned an empty reply"
            raise TextGenerationError(msg)
        return content


def _create_providers() -> list[BaseTextProvider]:
    """Create providers in configured order."""
    settings = get_settings()
    available: dict[str, Callable[[], BaseTextProvider]] = {
        "openrouter": lambda: OpenAICompatibleProvider(
            "openrouter",
            settings.openrouter_api_key,
            settings.openrouter_base_url,
            settings.openrouter_model,
            settings.ai_timeout_seconds,
        ),
        "groq": lambda: OpenAICompatibleProvider(
            "groq",
            settings.groq_api_key,
            settings.groq_base_url,
            settings.groq_model,
            settings.ai_timeout_seconds,
        ),
    }
    providers = []
    for name in settings.ai_providers:
        factory = available.get(name.lower())
        if factory is None:
            msg = f"Unsupported text provider: {name}"
            raise ValueError(msg)
        providers.append(factory())
    return providers


class TextGenerationService:
    """
    High-level generation operations for lessons, quizzes, tutors and chat.

    Each operation walks the provider list; a provider whose reply cannot be
    parsed counts as failed and the next one is tried.
    """

    def __init__(self, providers: list[BaseTextProvider] | None = None) -> None:
        self.providers = providers if providers is not None else _create_providers()
        self.max_tokens = get_settings().ai_max_tokens

    async def _generate(
        self,
        operation: str,
        messages: Sequence[dict[str, str]],
        parse: Callable[[str], T],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> T:
        if not self.providers:
            msg = "No text providers configured"
            raise TextGenerationError(msg)

        for provider in self.providers:
            try:
                raw = await provider.complete(messages, temperature, max_tokens or self.max_tokens)
                return parse(raw)
            except TextGenerationError as e:
                logger.warning("text_provider_failed", operation=operation, provider=provider.name, error=str(e))

        msg = f"All text providers failed for {operation}"
        raise TextGenerationError(msg)

    async def generate_lesson(self, material: str, subject: str) -> LessonDraft:
        return await self._generate(
            "lesson",
            lesson_messages(material, subject),
            lambda raw: parse_draft(raw, LessonDraft),
        )

    async def generate_quiz(self, content: str, title: str) -> QuizDraft:
        return await self._generate(
            "quiz",
            quiz_messages(content, title, MIN_QUIZ_QUESTIONS, MAX_QUIZ_QUESTIONS),
            lambda raw: parse_draft(raw, QuizDraft),
        )

    async def generate_expert(self, survey: dict[str, Any]) -> ExpertDraft:
        """Generate a tutor persona, falling back to a fixed default when every provider fails."""
        try:
            return await self._generate(
                "expert",
                expert_messages(survey),
                lambda raw: parse_draft(raw, ExpertDraft),
            )
        except TextGenerationError:
            logger.warning("expert_generation_fallback")
            return DEFAULT_EXPERT.model_copy()

    async def generate_chat_reply(
        self,
        message: str,
        name: str,
        personality: str,
        communication_style: str,
        history: Sequence[dict[str, str]] = (),
    ) -> str:
        """Reply in the tutor's voice; ``history`` is oldest-first role/content pairs."""
        return await self._generate(
            "chat",
            chat_messages(message, name, personality, communication_style, history),
            lambda raw: raw.strip(),
            temperature=0.8,
            max_tokens=500,
        )


# Module-level singleton
_text_generator: TextGenerationService | None = None


def get_text_generator() -> TextGenerationService:
    """Get or create the text-generation service (FastAPI dependency)."""
    global _text_generator  # noqa: PLW0603
    if _text_generator is None:
        _text_generator = TextGenerationService()
    return _text_generator


def reset_text_generator() -> None:
    """Reset the text-generation singleton (for testing)."""
    global _text_generator  # noqa: PLW0603
    _text_generator = None
