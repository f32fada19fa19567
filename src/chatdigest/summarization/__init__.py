"""Summarization pipeline for group chat logs."""

from .auto_trigger import AutoSummaryTracker
from .chunker import Chunk, ChunkingError, create_chunks, split_oversized_chunks
from .summarizer import (
    BATCH_SIZE,
    FALLBACK_MESSAGE,
    NO_MESSAGES_SUMMARY,
    BudgetExceeded,
    CompletionClient,
    Summarizer,
    SummaryResult,
    SummaryStats,
)

__all__ = [
    "AutoSummaryTracker",
    "Chunk",
    "ChunkingError",
    "create_chunks",
    "split_oversized_chunks",
    "BATCH_SIZE",
    "FALLBACK_MESSAGE",
    "NO_MESSAGES_SUMMARY",
    "BudgetExceeded",
    "CompletionClient",
    "Summarizer",
    "SummaryResult",
    "SummaryStats",
]
