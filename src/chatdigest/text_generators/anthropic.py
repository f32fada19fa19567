"""Completion backend that calls Anthropic's Claude models."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from anthropic import APIConnectionError, APIError, AsyncAnthropic, RateLimitError

from .base import CompletionError, TextGeneratorAPI

_log = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# A single shared client is plenty; reuse it across all requests              #
# --------------------------------------------------------------------------- #
_CLIENT_CACHE: Dict[str, AsyncAnthropic] = {}


class AnthropicTextGenerator(TextGeneratorAPI):
    """Generate summaries with Anthropic's Claude models.

    Relies on the ``anthropic`` package and an ``ANTHROPIC_API_KEY``
    environment variable. The system instruction goes into the top-level
    ``system`` parameter as the Messages API requires; the reply's text
    blocks are joined and returned.
    """

    def __init__(self, model: str = "claude-3-5-haiku-latest") -> None:
        self.model = model

    # ---------------------------------------------------------------- helpers

    def _get_client(self) -> AsyncAnthropic:
        """Return (and cache) a shared ``AsyncAnthropic`` client instance."""
        if "default" not in _CLIENT_CACHE:
            _CLIENT_CACHE["default"] = AsyncAnthropic()  # picks up API key
        return _CLIENT_CACHE["default"]

    # ---------------------------------------------------------------- public

    async def complete(
        self,
        system_prompt: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        client = self._get_client()
        try:
            response = await client.messages.create(**kwargs)
        except RateLimitError as e:
            _log.warning("Anthropic rate limit hit for model %s: %s", self.model, e)
            raise CompletionError(f"rate limited: {e}") from e
        except APIConnectionError as e:
            _log.error("Anthropic connection error for model %s: %s", self.model, e)
            raise CompletionError(f"could not reach Anthropic: {e}") from e
        except APIError as e:
            _log.error("Anthropic API error for model %s (status %s): %s", self.model, getattr(e, "status_code", "unknown"), e)
            raise CompletionError(f"completion failed: {e}") from e

        # SDK returns a list of content blocks; aggregate text blocks.
        parts: List[str] = []
        for block in getattr(response, "content", []) or []:
            text = getattr(block, "text", None)
            if text:
                parts.append(text)
        if not parts:
            raise CompletionError("malformed completion response: no text blocks")
        return "".join(parts).strip()
