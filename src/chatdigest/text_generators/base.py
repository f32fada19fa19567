from __future__ import annotations

from abc import ABC, abstractmethod


class CompletionError(RuntimeError):
    """A completion request failed (transport, non-2xx status or malformed reply)."""


class TextGeneratorAPI(ABC):
    """Abstract base class for completion providers."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Return the model's reply to *prompt* under *system_prompt*."""
        raise NotImplementedError
