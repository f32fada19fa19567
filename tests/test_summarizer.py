"""Tests for the batch / consolidate / refine pipeline."""

from __future__ import annotations

from unittest.mock import AsyncMock, call, patch

import pytest

from chatdigest.settings import PromptBudget
from chatdigest.summarization.prompts import (
    CONSOLIDATION_SYSTEM_PROMPT,
    REFINEMENT_SYSTEM_PROMPT,
    SUMMARIZATION_SYSTEM_PROMPT,
    build_initial_prompt,
)
from chatdigest.summarization.summarizer import (
    FALLBACK_MESSAGE,
    NO_MESSAGES_SUMMARY,
    Summarizer,
)

from conftest import FakeCompletionClient, word_count


def make_chunks(n: int) -> list[tuple[str, ...]]:
    return [(f"[9:0{i % 10}] User{i}: message {i}",) for i in range(n)]


def make_summarizer(client, budget: PromptBudget | None = None) -> Summarizer:
    return Summarizer(client, budget, chunk_delay=0, batch_delay=0, count_tokens=word_count)


class TestSingleBatch:
    """Inputs that fit in one batch never consolidate or refine."""

    @pytest.mark.asyncio
    async def test_single_chunk_returns_response_verbatim(self, fake_client):
        result = await make_summarizer(fake_client).summarize_chunks(make_chunks(1))

        assert result.summary == "summary #1"
        assert result.failed is False
        assert len(fake_client.calls) == 1
        first = fake_client.calls[0]
        assert first["system"] == SUMMARIZATION_SYSTEM_PROMPT
        assert first["prompt"] == build_initial_prompt("[9:00] User0: message 0")
        assert result.stats.consolidation_calls == 0
        assert result.stats.refinement_calls == 0

    @pytest.mark.asyncio
    async def test_second_chunk_uses_continuation_and_appends(self, fake_client):
        result = await make_summarizer(fake_client).summarize_chunks(make_chunks(2))

        assert result.summary == "summary #1\n\nsummary #2"
        second = fake_client.calls[1]["prompt"]
        assert second.startswith("Continue analyzing")
        assert "Current summary:\nsummary #1" in second
        assert "[9:01] User1: message 1" in second

    @pytest.mark.asyncio
    async def test_passes_budget_sampling_settings(self, fake_client):
        budget = PromptBudget(temperature=0.3, max_completion_tokens=123)
        await make_summarizer(fake_client, budget).summarize_chunks(make_chunks(1))

        assert fake_client.calls[0]["temperature"] == 0.3
        assert fake_client.calls[0]["max_tokens"] == 123

    @pytest.mark.asyncio
    async def test_no_chunks_makes_no_calls(self, fake_client):
        result = await make_summarizer(fake_client).summarize_chunks([])

        assert result.summary == NO_MESSAGES_SUMMARY
        assert fake_client.calls == []


class TestMultiBatch:
    """Consolidation and refinement across batches."""

    @pytest.mark.asyncio
    async def test_three_chunks(self, fake_client):
        result = await make_summarizer(fake_client).summarize_chunks(make_chunks(3))

        systems = [c["system"] for c in fake_client.calls]
        assert systems == [
            SUMMARIZATION_SYSTEM_PROMPT,
            SUMMARIZATION_SYSTEM_PROMPT,
            SUMMARIZATION_SYSTEM_PROMPT,
            CONSOLIDATION_SYSTEM_PROMPT,
            REFINEMENT_SYSTEM_PROMPT,
        ]
        consolidation = fake_client.calls[3]["prompt"]
        assert "FIRST SUMMARY:\nsummary #1\n\nsummary #2" in consolidation
        assert "SECOND SUMMARY:\nsummary #3" in consolidation
        assert "DRAFT SUMMARY:\nsummary #4" in fake_client.calls[4]["prompt"]
        assert result.summary == "summary #5"

    @pytest.mark.asyncio
    async def test_ten_chunks(self, fake_client):
        result = await make_summarizer(fake_client).summarize_chunks(make_chunks(10))

        assert result.stats.batch_count == 5
        assert result.stats.chunk_calls == 10
        assert result.stats.consolidation_calls == 4
        assert result.stats.refinement_calls == 1
        assert len(fake_client.calls) == 15
        assert result.summary == "summary #15"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", range(1, 9))
    async def test_consolidation_count_and_refinement_gating(self, n):
        client = FakeCompletionClient()
        result = await make_summarizer(client).summarize_chunks(make_chunks(n))

        batches = -(-n // 2)
        assert result.stats.consolidation_calls == batches - 1
        assert result.stats.refinement_calls == (1 if n > 2 else 0)

    @pytest.mark.asyncio
    async def test_delays_between_chunks_and_batches(self, fake_client):
        summarizer = Summarizer(fake_client, chunk_delay=0.1, batch_delay=0.15, count_tokens=word_count)
        with patch("chatdigest.summarization.summarizer.asyncio.sleep", new=AsyncMock()) as sleep:
            await summarizer.summarize_chunks(make_chunks(3))

        assert sleep.await_args_list == [call(0.1), call(0.15)]


class TestPromptBudget:
    """Prompts above the ceiling are never sent."""

    @pytest.mark.asyncio
    async def test_oversized_continuation_ends_batch(self, fake_client):
        small = ("[9:00] Ann: hi",)
        large = tuple(["[9:01] Ben: " + "word " * 500])
        limit = word_count(build_initial_prompt(small[0]))
        summarizer = make_summarizer(fake_client, PromptBudget(max_prompt_tokens=limit))

        result = await summarizer.summarize_chunks([small, large])

        assert len(fake_client.calls) == 1
        assert result.summary == "summary #1"
        assert result.stats.skipped_chunks == 1

    @pytest.mark.asyncio
    async def test_empty_later_batch_is_not_consolidated(self, fake_client):
        huge = ("[9:02] Cy: " + "word " * 2000,)
        summarizer = make_summarizer(fake_client, PromptBudget(max_prompt_tokens=1000))

        result = await summarizer.summarize_chunks(make_chunks(2) + [huge])

        systems = [c["system"] for c in fake_client.calls]
        assert systems == [
            SUMMARIZATION_SYSTEM_PROMPT,
            SUMMARIZATION_SYSTEM_PROMPT,
            REFINEMENT_SYSTEM_PROMPT,
        ]
        assert result.stats.skipped_chunks == 1
        assert "DRAFT SUMMARY:\nsummary #1\n\nsummary #2" in fake_client.calls[2]["prompt"]

    @pytest.mark.asyncio
    async def test_single_oversized_chunk_yields_placeholder(self, fake_client):
        huge = ("[9:02] Cy: " + "word " * 2000,)
        summarizer = make_summarizer(fake_client, PromptBudget(max_prompt_tokens=1000))

        result = await summarizer.summarize_chunks([huge])

        assert fake_client.calls == []
        assert result.summary == NO_MESSAGES_SUMMARY
        assert result.failed is False
        assert result.stats.skipped_chunks == 1

    @pytest.mark.asyncio
    async def test_no_refinement_when_every_batch_is_oversized(self, fake_client):
        huge = ("[9:02] Cy: " + "word " * 2000,)
        summarizer = make_summarizer(fake_client, PromptBudget(max_prompt_tokens=1000))

        result = await summarizer.summarize_chunks([huge] * 3)

        assert fake_client.calls == []
        assert result.summary == NO_MESSAGES_SUMMARY
        assert result.stats.refinement_calls == 0
        assert result.stats.skipped_chunks == 3


class TestFailurePolicy:
    """Any completion failure yields the fallback and stops the run."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fail_on", [1, 2, 3, 5])
    async def test_failure_returns_fallback_and_stops(self, fail_on):
        client = FakeCompletionClient(fail_on=fail_on)
        result = await make_summarizer(client).summarize_chunks(make_chunks(4))

        assert result.summary == FALLBACK_MESSAGE
        assert result.failed is True
        assert len(client.calls) == fail_on

    @pytest.mark.asyncio
    async def test_unexpected_client_errors_are_treated_as_failures(self):
        client = FakeCompletionClient(fail_on=1, error=KeyError("choices"))
        result = await make_summarizer(client).summarize_chunks(make_chunks(3))

        assert result.summary == FALLBACK_MESSAGE
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_summarize_returns_plain_fallback_string(self, make_message):
        client = FakeCompletionClient(fail_on=1)
        summary = await make_summarizer(client).summarize([make_message("hi")])

        assert summary == FALLBACK_MESSAGE


class TestSummarizeMessages:
    """End-to-end over message records."""

    @pytest.mark.asyncio
    async def test_filters_then_summarizes(self, fake_client, make_message):
        messages = [make_message("hi"), make_message(""), make_message("<media>", has_media=True)]
        summary = await make_summarizer(fake_client).summarize(messages)

        assert summary == "summary #1"
        assert len(fake_client.calls) == 1
        assert "CHAT MESSAGES:\n[9:05] Alice: hi\n\nSUMMARY:" in fake_client.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_fifty_messages_one_chunk(self, fake_client, make_message):
        messages = [make_message(f"note {i}", minute=i % 60) for i in range(50)]
        summary = await make_summarizer(fake_client).summarize(messages)

        assert summary == "summary #1"
        assert len(fake_client.calls) == 1

    def test_rejects_empty_batches(self, fake_client):
        with pytest.raises(ValueError):
            Summarizer(fake_client, batch_size=0)
