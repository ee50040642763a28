"""Async Claude client for single-shot text completions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import anthropic

from padi.config import settings
from padi.errors import CompletionError

logger = logging.getLogger(__name__)


def _build_sdk_client() -> anthropic.AsyncAnthropic:
    kwargs: dict[str, Any] = {"api_key": settings.anthropic_api_key}
    if settings.anthropic_base_url:
        kwargs["base_url"] = settings.anthropic_base_url
    return anthropic.AsyncAnthropic(**kwargs)


class LLMClient:
    """Completion provider: prompt in, generated text out.

    No tools, no streaming, no conversation state. The SDK client is created
    lazily so constructing an ``LLMClient`` never touches the network or
    requires an API key.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self._client = client
        self.model = model or settings.chat_model
        self.max_tokens = max_tokens or settings.max_tokens

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = _build_sdk_client()
        return self._client

    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        timeout: float | None = None,
    ) -> str:
        """Send *prompt* as a single user message and return the reply text.

        Args:
            prompt: The full prompt text.
            model: Override the default model for this call.
            timeout: Seconds before the call is abandoned. ``None`` waits
                as long as the SDK does.

        Raises:
            CompletionError: On any API failure or when *timeout* expires.
        """
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": model or self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            async with asyncio.timeout(timeout):
                response = await client.messages.create(**kwargs)
        except TimeoutError as exc:
            msg = f"completion timed out after {timeout}s"
            raise CompletionError(msg) from exc
        except anthropic.APIError as exc:
            msg = f"completion failed: {exc}"
            raise CompletionError(msg) from exc

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
