"""Centralized configuration for the summarizer.

Values come from the environment (a ``.env`` file is loaded by the entry
point). Nothing here is mutated at runtime.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass

from .tokenizer import count_tokens


_DEFAULT_API_URL = "http://localhost:1234/v1"


@dataclass(frozen=True)
class PromptBudget:
    """Token limits that keep every request inside the model context."""

    max_context_for_messages: int = 3000
    system_overhead_tokens: int = 500
    max_prompt_tokens: int = 3800
    split_threshold_tokens: int = 2000
    max_completion_tokens: int = 900
    temperature: float = 0.1
    max_context_tokens: int = 4096

    @property
    def max_chunk_tokens(self) -> int:
        return min(2000, self.max_context_for_messages - self.system_overhead_tokens)


@dataclass(frozen=True)
class Settings:
    api: str = "lmstudio"
    api_url: str = _DEFAULT_API_URL
    api_key: str = "lm-studio"
    model: str = "local-model"
    max_context_tokens: int = 4096
    max_context_for_messages: int = 3000
    max_completion_tokens: int = 900
    temperature: float = 0.1
    tokenizer_encoding: str = "cl100k_base"
    auto_summary_threshold: int = 250
    log_level: str = "INFO"

    @property
    def budget(self) -> PromptBudget:
        return PromptBudget(
            max_context_for_messages=self.max_context_for_messages,
            max_completion_tokens=self.max_completion_tokens,
            temperature=self.temperature,
            max_context_tokens=self.max_context_tokens,
        )

    def token_counter(self):
        """Return a token counter bound to the configured tiktoken encoding."""
        return functools.partial(count_tokens, encoding_name=self.tokenizer_encoding)


def _int_from_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_from_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _normalize_api_url(url: str) -> str:
    """Accept either a base URL or the full chat-completions endpoint.

    The OpenAI SDK appends ``/chat/completions`` itself, so a URL copied from
    the LM Studio server page is cut back to its base.
    """
    url = url.strip().rstrip("/")
    suffix = "/chat/completions"
    if url.endswith(suffix):
        url = url[: -len(suffix)]
    return url or _DEFAULT_API_URL


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""
    return Settings(
        api=(os.getenv("LLM_API") or "lmstudio").strip().lower(),
        api_url=_normalize_api_url(os.getenv("LM_STUDIO_API_URL") or _DEFAULT_API_URL),
        api_key=os.getenv("LLM_API_KEY") or "lm-studio",
        model=os.getenv("LLM_MODEL") or "local-model",
        max_context_tokens=_int_from_env("MAX_CONTEXT_TOKENS", 4096),
        max_context_for_messages=_int_from_env("MAX_CONTEXT_FOR_MESSAGES", 3000),
        max_completion_tokens=_int_from_env("MAX_COMPLETION_TOKENS", 900),
        temperature=_float_from_env("LLM_TEMPERATURE", 0.1),
        tokenizer_encoding=os.getenv("TOKENIZER_ENCODING") or "cl100k_base",
        auto_summary_threshold=_int_from_env("AUTO_SUMMARY_THRESHOLD", 250),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
