"""Token counting with the same BPE encoding the completion model uses."""

from __future__ import annotations

import functools
import os

import tiktoken


DEFAULT_ENCODING = "cl100k_base"


@functools.lru_cache(maxsize=None)
def get_encoder(name: str) -> tiktoken.Encoding:
    """Return (and cache) the tiktoken encoding called *name*."""
    return tiktoken.get_encoding(name)


def count_tokens(text: str | None, encoding_name: str | None = None) -> int:
    """Return the exact number of tokens in *text*.

    The encoding defaults to ``TOKENIZER_ENCODING`` from the environment,
    falling back to ``cl100k_base``. Empty input counts as zero.
    """
    if not text:
        return 0
    name = encoding_name or os.getenv("TOKENIZER_ENCODING") or DEFAULT_ENCODING
    # Special-token text such as "<|endoftext|>" can appear in chat logs
    return len(get_encoder(name).encode(text, disallowed_special=()))
