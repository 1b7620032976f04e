"""Async LLM client: OpenAI first, Anthropic as fallback."""
from __future__ import annotations

import logging
from typing import Optional

import anthropic
from openai import AsyncOpenAI

from lodging_search.config.settings import Settings

logger = logging.getLogger(__name__)


class LLMClient:
    """Sends one system + user exchange to the first provider that answers."""

    def __init__(
        self,
        settings: Settings,
        *,
        openai_client: Optional[AsyncOpenAI] = None,
        anthropic_client: Optional[anthropic.AsyncAnthropic] = None,
    ) -> None:
        self.settings = settings
        self._openai = openai_client
        self._anthropic = anthropic_client
        if self._openai is None and settings.openai_api_key:
            self._openai = AsyncOpenAI(api_key=settings.openai_api_key)
        if self._anthropic is None and settings.anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)

    @property
    def configured(self) -> bool:
        return self._openai is not None or self._anthropic is not None

    async def complete(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 300,
        temperature: float = 0.3,
    ) -> str:
        """Return the raw completion text.

        Raises:
            RuntimeError: no provider is configured or every configured provider failed.
        """
        errors: list[str] = []
        messages = [{"role": "user", "content": user}]

        if self._openai is not None:
            try:
                response = await self._openai.chat.completions.create(
                    model=self.settings.openai_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    messages=[{"role": "system", "content": system}, *messages],
                )
                return (response.choices[0].message.content or "").strip()
            except Exception as exc:
                errors.append(f"OpenAI: {exc}")
                logger.warning("OpenAI completion failed, trying Anthropic: %s", exc)

        if self._anthropic is not None:
            try:
                response = await self._anthropic.messages.create(
                    model=self.settings.anthropic_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system,
                    messages=messages,
                )
                return response.content[0].text.strip()
            except Exception as exc:
                errors.append(f"Anthropic: {exc}")
                logger.warning("Anthropic completion failed: %s", exc)

        if not errors:
            raise RuntimeError("No LLM provider configured")
        raise RuntimeError(f"All LLM providers failed: {'; '.join(errors)}")
