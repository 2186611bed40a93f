"""Text-generation provider boundary.

The rest of the engine only sees :class:`TextProvider`: send a system
instruction and a user message, get raw text back.  Any transport or API
failure surfaces as :class:`~app.errors.ProviderUnavailable`.
"""

import logging
import os
from typing import Protocol

import anthropic

from app.errors import ProviderUnavailable

logger = logging.getLogger(__name__)

ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022")
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "1024"))
AI_PROVIDER_TIMEOUT = float(os.getenv("AI_PROVIDER_TIMEOUT", "30"))


class TextProvider(Protocol):
    async def complete(
        self,
        system: str | None,
        user: str,
        max_tokens: int = ANTHROPIC_MAX_TOKENS,
        temperature: float = 0.2,
    ) -> str: ...


class AnthropicProvider:
    """Messages API client with a bounded timeout and no SDK-level retries."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = ANTHROPIC_MODEL,
        timeout: float = AI_PROVIDER_TIMEOUT,
    ):
        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.model = model
        self.client = None
        if api_key:
            # Retry policy belongs to the caller, so the SDK must not retry.
            self.client = anthropic.AsyncAnthropic(
                api_key=api_key, timeout=timeout, max_retries=0
            )

    async def complete(
        self,
        system: str | None,
        user: str,
        max_tokens: int = ANTHROPIC_MAX_TOKENS,
        temperature: float = 0.2,
    ) -> str:
        if self.client is None:
            raise ProviderUnavailable(
                "AI service not configured (missing ANTHROPIC_API_KEY)"
            )
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": user}],
        }
        if system:
            kwargs["system"] = system
        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIStatusError as exc:
            logger.warning("AI provider returned status %s", exc.status_code)
            raise ProviderUnavailable(
                f"AI service error ({exc.status_code})"
            ) from exc
        except anthropic.APIError as exc:
            # connection errors and timeouts
            logger.warning("AI provider call failed: %s", exc)
            raise ProviderUnavailable() from exc

        # Only text blocks carry the answer
        parts = [
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ]
        return "\n".join(parts).strip()


def get_text_provider() -> TextProvider:
    """FastAPI dependency; tests override it with a scripted provider."""
    return AnthropicProvider()
