"""Progressive summarization of chunked chat logs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from ..formatting import format_compact
from ..settings import PromptBudget
from ..text_generators.base import CompletionError
from ..tokenizer import count_tokens as _count_tokens
from .chunker import Chunk, Formatter, TokenCounter, chunk_token_counts, create_chunks
from .prompts import (
    CONSOLIDATION_SYSTEM_PROMPT,
    REFINEMENT_SYSTEM_PROMPT,
    SUMMARIZATION_SYSTEM_PROMPT,
    build_consolidation_prompt,
    build_continuation_prompt,
    build_initial_prompt,
    build_refinement_prompt,
)

_LOG = logging.getLogger(__name__)

BATCH_SIZE = 2
CHUNK_DELAY_SECONDS = 0.1
BATCH_DELAY_SECONDS = 0.15

FALLBACK_MESSAGE = (
    "Failed to generate summary. Please check if the local model server (LM Studio) "
    "is running and reachable, or if the input is too large for the model context."
)
NO_MESSAGES_SUMMARY = "[No messages to summarize]"


class CompletionClient(Protocol):
    """Protocol for the completion service."""

    async def complete(
        self,
        system_prompt: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Return the model's reply to *prompt*."""
        ...


class BudgetExceeded(Exception):
    """A prompt would exceed the per-request token ceiling."""

    def __init__(self, prompt_tokens: int, limit: int) -> None:
        super().__init__(f"prompt is {prompt_tokens} tokens, limit is {limit}")
        self.prompt_tokens = prompt_tokens
        self.limit = limit


@dataclass
class SummaryStats:
    """Counters for one summarization run."""

    chunk_count: int = 0
    batch_count: int = 0
    chunk_calls: int = 0
    consolidation_calls: int = 0
    refinement_calls: int = 0
    skipped_chunks: int = 0

    @property
    def completion_calls(self) -> int:
        return self.chunk_calls + self.consolidation_calls + self.refinement_calls


@dataclass
class SummaryResult:
    summary: str
    stats: SummaryStats = field(default_factory=SummaryStats)
    failed: bool = False


class Summarizer:
    """Drives the summarize, consolidate and refine protocol over chunks."""

    def __init__(
        self,
        client: CompletionClient,
        budget: Optional[PromptBudget] = None,
        *,
        batch_size: int = BATCH_SIZE,
        chunk_delay: float = CHUNK_DELAY_SECONDS,
        batch_delay: float = BATCH_DELAY_SECONDS,
        count_tokens: TokenCounter = _count_tokens,
        formatter: Formatter = format_compact,
    ):
        """
        Initialize summarizer.

        Args:
            client: Completion service implementing ``complete()``
            budget: Token limits; defaults to ``PromptBudget()``
            batch_size: Chunks summarized together before consolidation
            chunk_delay: Seconds to wait between chunk requests of one batch
            batch_delay: Seconds to wait between batches
            count_tokens: Token counter used for every budget check
            formatter: Turns a message into a line, or ``None`` to skip it
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.client = client
        self.budget = budget or PromptBudget()
        self.batch_size = batch_size
        self.chunk_delay = chunk_delay
        self.batch_delay = batch_delay
        self.count_tokens = count_tokens
        self.formatter = formatter

    def chunk(self, messages: Iterable[Any]) -> list[Chunk]:
        return create_chunks(messages, self.formatter, self.budget, self.count_tokens)

    async def summarize(self, messages: Iterable[Any]) -> str:
        """
        Summarize a chronological message log.

        Returns:
            The final summary, or ``FALLBACK_MESSAGE`` if any completion
            request failed
        """
        result = await self.summarize_chunks(self.chunk(messages))
        return result.summary

    async def summarize_chunks(self, chunks: Sequence[Chunk]) -> SummaryResult:
        """Run the pipeline over prebuilt chunks and report what it did."""
        stats = SummaryStats(chunk_count=len(chunks))
        if not chunks:
            return SummaryResult(NO_MESSAGES_SUMMARY, stats)

        for index, tokens in enumerate(chunk_token_counts(chunks, self.count_tokens), start=1):
            _LOG.info("Chunk %d: %d tokens, %d messages", index, tokens, len(chunks[index - 1]))

        try:
            summary = await self._run(chunks, stats)
        except CompletionError:
            _LOG.exception("Error summarizing with the completion service")
            return SummaryResult(FALLBACK_MESSAGE, stats, failed=True)
        return SummaryResult(summary, stats)

    def _check_budget(self, prompt: str) -> int:
        prompt_tokens = self.count_tokens(prompt)
        _LOG.info("Complete prompt token count: %d", prompt_tokens)
        if prompt_tokens > self.budget.max_prompt_tokens:
            raise BudgetExceeded(prompt_tokens, self.budget.max_prompt_tokens)
        return prompt_tokens

    async def _complete(self, system_prompt: str, prompt: str) -> str:
        try:
            return await self.client.complete(
                system_prompt,
                prompt,
                temperature=self.budget.temperature,
                max_tokens=self.budget.max_completion_tokens,
            )
        except CompletionError:
            raise
        except Exception as exc:
            raise CompletionError(f"completion client failed: {exc}") from exc

    async def _summarize_batch(
        self,
        batch: Sequence[Chunk],
        first_chunk_number: int,
        total_chunks: int,
        stats: SummaryStats,
    ) -> str:
        batch_summary = ""
        for offset, chunk in enumerate(batch):
            _LOG.info(
                "Processing chunk %d/%d (%d messages)",
                first_chunk_number + offset,
                total_chunks,
                len(chunk),
            )
            chat_text = "\n".join(chunk)
            if offset == 0:
                prompt = build_initial_prompt(chat_text)
            else:
                prompt = build_continuation_prompt(batch_summary, chat_text)

            try:
                self._check_budget(prompt)
            except BudgetExceeded as exc:
                # Unsent chunks of this batch are dropped, not deferred
                skipped = len(batch) - offset
                stats.skipped_chunks += skipped
                _LOG.warning("%s; ending batch early and skipping %d chunk(s)", exc, skipped)
                break

            stats.chunk_calls += 1
            chunk_summary = await self._complete(SUMMARIZATION_SYSTEM_PROMPT, prompt)
            batch_summary = chunk_summary if offset == 0 else f"{batch_summary}\n\n{chunk_summary}"

            if offset < len(batch) - 1:
                await asyncio.sleep(self.chunk_delay)

        return batch_summary

    async def _consolidate(self, full_summary: str, batch_summary: str, stats: SummaryStats) -> str:
        prompt = build_consolidation_prompt(full_summary, batch_summary)
        _LOG.info("Consolidation prompt tokens: %d", self.count_tokens(prompt))
        stats.consolidation_calls += 1
        return await self._complete(CONSOLIDATION_SYSTEM_PROMPT, prompt)

    async def _refine(self, full_summary: str, stats: SummaryStats) -> str:
        prompt = build_refinement_prompt(full_summary)
        _LOG.info("Performing final refinement of summary (%d prompt tokens)", self.count_tokens(prompt))
        stats.refinement_calls += 1
        return await self._complete(REFINEMENT_SYSTEM_PROMPT, prompt)

    async def _run(self, chunks: Sequence[Chunk], stats: SummaryStats) -> str:
        batches = [chunks[i:i + self.batch_size] for i in range(0, len(chunks), self.batch_size)]
        stats.batch_count = len(batches)
        full_summary = ""

        for batch_index, batch in enumerate(batches):
            start = batch_index * self.batch_size
            _LOG.info(
                "Processing batch %d/%d (chunks %d to %d)",
                batch_index + 1,
                len(batches),
                start + 1,
                start + len(batch),
            )
            batch_summary = await self._summarize_batch(batch, start + 1, len(chunks), stats)

            if not full_summary:
                full_summary = batch_summary
            elif not batch_summary:
                _LOG.warning("Batch %d produced no summary; nothing to consolidate", batch_index + 1)
            else:
                _LOG.info("Consolidating batch %d with previous summary", batch_index + 1)
                full_summary = await self._consolidate(full_summary, batch_summary, stats)

            if batch_index < len(batches) - 1:
                await asyncio.sleep(self.batch_delay)

        if not full_summary:
            _LOG.warning("Every batch was over the prompt budget; no summary produced")
            return NO_MESSAGES_SUMMARY

        if len(chunks) > self.batch_size:
            full_summary = await self._refine(full_summary, stats)

        return full_summary
