"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from chatdigest.formatting import Message, QuotedMessage
from chatdigest.text_generators.base import CompletionError


class FakeCompletionClient:
    """Completion client that answers "summary #N" and records every call."""

    def __init__(self, fail_on: int | None = None, error: Exception | None = None):
        self.calls: list[dict] = []
        self.fail_on = fail_on
        self.error = error or CompletionError("server unreachable")

    async def complete(self, system_prompt, prompt, *, temperature, max_tokens):
        self.calls.append(
            {
                "system": system_prompt,
                "prompt": prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise self.error
        return f"summary #{len(self.calls)}"


def word_count(text: str) -> int:
    """Deterministic stand-in token counter: one token per word."""
    return len(text.split())


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def make_message():
    """Factory for canonical messages at a fixed UTC date."""

    def _make(
        body: str = "hello",
        *,
        author: str = "Alice",
        hour: int = 9,
        minute: int = 5,
        has_media: bool = False,
        from_me: bool = False,
        quoted: QuotedMessage | None = None,
    ) -> Message:
        return Message(
            timestamp=datetime(2024, 1, 5, hour, minute, tzinfo=timezone.utc),
            author=author,
            body=body,
            has_media=has_media,
            from_me=from_me,
            quoted=quoted,
        )

    return _make
