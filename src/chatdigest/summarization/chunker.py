"""Token-bounded chunking of formatted chat lines."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Optional

from ..formatting import format_compact
from ..settings import PromptBudget
from ..tokenizer import count_tokens as _count_tokens

_LOG = logging.getLogger(__name__)

Chunk = tuple[str, ...]
TokenCounter = Callable[[str], int]
Formatter = Callable[[Any], Optional[str]]

TRUNCATION_MARKER = "... [message truncated due to length]"
# A single line above this share of the chunk budget gets truncated
LARGE_LINE_RATIO = 0.75
TRUNCATED_LINE_RATIO = 0.5


class ChunkingError(RuntimeError):
    """Raised when chunk splitting would break an invariant."""


def truncate_line(line: str, max_chunk_tokens: int) -> str:
    """Cut an oversized line down to half the chunk budget in characters."""
    return line[: int(max_chunk_tokens * TRUNCATED_LINE_RATIO)] + TRUNCATION_MARKER


def split_oversized_chunks(
    chunks: Iterable[Chunk],
    limit: int,
    count_tokens: TokenCounter = _count_tokens,
) -> list[Chunk]:
    """
    Halve every chunk whose joined text is above *limit* tokens until all fit.

    Works through a stack so the original order is kept. A chunk with a single
    line cannot be split further and is emitted as is.

    Args:
        chunks: Chunks in conversation order
        limit: Maximum token count of ``"\\n".join(chunk)``
        count_tokens: Token counter

    Returns:
        New list of chunks, each within the limit unless it holds one line
    """
    pending = list(chunks)
    pending.reverse()
    result: list[Chunk] = []

    while pending:
        chunk = pending.pop()
        total = count_tokens("\n".join(chunk))
        if total <= limit:
            result.append(chunk)
            continue
        if len(chunk) == 1:
            _LOG.warning("Single-message chunk is still %d tokens after truncation", total)
            result.append(chunk)
            continue

        midpoint = len(chunk) // 2
        first, second = chunk[:midpoint], chunk[midpoint:]
        if not first or not second:
            raise ChunkingError(f"degenerate split of a {len(chunk)}-line chunk")
        _LOG.info("Chunk is too large (%d tokens, %d messages); splitting", total, len(chunk))
        pending.append(second)
        pending.append(first)

    return result


def create_chunks(
    messages: Iterable[Any],
    formatter: Formatter = format_compact,
    budget: PromptBudget = PromptBudget(),
    count_tokens: TokenCounter = _count_tokens,
) -> list[Chunk]:
    """Partition *messages* into chunks that each fit one summarization prompt."""
    max_chunk_tokens = budget.max_chunk_tokens
    _LOG.info("Creating chunks with maximum %d tokens each", max_chunk_tokens)

    lines = [line for line in map(formatter, messages) if line is not None]

    chunks: list[Chunk] = []
    current: list[str] = []
    current_tokens = 0

    for line in lines:
        line_tokens = count_tokens(line)

        if current_tokens + line_tokens > max_chunk_tokens and current:
            chunks.append(tuple(current))
            current = []
            current_tokens = 0

        if line_tokens > max_chunk_tokens * LARGE_LINE_RATIO:
            _LOG.warning("Very large message detected (%d tokens); truncating", line_tokens)
            current.append(truncate_line(line, max_chunk_tokens))
            current_tokens = sum(count_tokens(item) for item in current)
        else:
            current.append(line)
            current_tokens += line_tokens

    if current:
        chunks.append(tuple(current))

    return split_oversized_chunks(chunks, budget.split_threshold_tokens, count_tokens)


def chunk_token_counts(chunks: Sequence[Chunk], count_tokens: TokenCounter = _count_tokens) -> list[int]:
    return [count_tokens("\n".join(chunk)) for chunk in chunks]
