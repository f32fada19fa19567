# text_generators/openai_compat.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional, TypedDict

from openai import APIConnectionError, APIError, AsyncOpenAI, RateLimitError

from .base import CompletionError, TextGeneratorAPI

_CLIENT_CACHE: Dict[tuple[str, Optional[str]], AsyncOpenAI] = {}
_LOG = logging.getLogger(__name__)

LM_STUDIO_BASE_URL = "http://localhost:1234/v1"


class _Message(TypedDict):
    role: str
    content: str


class OpenAICompatibleTextGenerator(TextGeneratorAPI):
    """Chat-completions backend for any OpenAI-compatible server.

    Defaults to a local LM Studio instance, which ignores the API key and
    serves whatever model is loaded under the name "local-model". Point
    ``base_url`` at ``https://api.openai.com/v1`` to use OpenAI itself; with
    ``api_key=None`` the SDK reads ``OPENAI_API_KEY``.
    """

    def __init__(
        self,
        model: str = "local-model",
        *,
        base_url: str = LM_STUDIO_BASE_URL,
        api_key: Optional[str] = "lm-studio",
        timeout: float = 120.0,
    ) -> None:
        self.model = model
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout

    def _get_client(self) -> AsyncOpenAI:
        key = (self.base_url, self.api_key)
        if key not in _CLIENT_CACHE:
            _CLIENT_CACHE[key] = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return _CLIENT_CACHE[key]

    async def complete(
        self,
        system_prompt: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        messages: List[_Message] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        client = self._get_client()

        _LOG.debug(
            "Completion request: model=%s, base_url=%s, prompt_chars=%d, max_tokens=%d",
            self.model,
            self.base_url,
            len(prompt),
            max_tokens,
        )

        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=messages,      # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except RateLimitError as e:
            _LOG.warning("Rate limit hit for model %s: %s", self.model, e)
            raise CompletionError(f"rate limited: {e}") from e
        except APIConnectionError as e:
            _LOG.error("Connection error for %s at %s: %s", self.model, self.base_url, e)
            raise CompletionError(f"could not reach {self.base_url}: {e}") from e
        except APIError as e:
            _LOG.error("API error for model %s (status %s): %s", self.model, getattr(e, "status_code", "unknown"), e)
            raise CompletionError(f"completion failed: {e}") from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise CompletionError("malformed completion response: no choices")
        content = getattr(choices[0].message, "content", None)
        if not isinstance(content, str):
            raise CompletionError("malformed completion response: no message content")

        _LOG.debug(
            "Completion result: finish_reason=%s, content_len=%d",
            getattr(choices[0], "finish_reason", None),
            len(content),
        )
        return content.strip()
