"""Summarize an exported chat log: ``python -m chatdigest messages.json``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from dotenv import load_dotenv

from chatdigest.formatting import format_structured_many
from chatdigest.settings import Settings, load_settings
from chatdigest.summarization import Summarizer
from chatdigest.text_generators import get_text_generator

logger = logging.getLogger("chatdigest")


def _read_records(path: Optional[Path]) -> list[Any]:
    raw = path.read_text(encoding="utf-8") if path else sys.stdin.read()
    data = json.loads(raw)
    # Accept a bare array or {"messages": [...]}
    if isinstance(data, dict):
        data = data.get("messages", [])
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of messages")
    return data


def _build_summarizer(settings: Settings, api: Optional[str], model: Optional[str]) -> Summarizer:
    api = api or settings.api
    kwargs: dict[str, Any] = {}
    if api in ("lmstudio", "local"):
        kwargs = {"base_url": settings.api_url, "api_key": settings.api_key}
    elif api in ("openai", "chatgpt") and settings.api_key != "lm-studio":
        kwargs = {"api_key": settings.api_key}
    client = get_text_generator(api, model or settings.model, **kwargs)
    return Summarizer(client, settings.budget, count_tokens=settings.token_counter())


async def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Summarize a group chat log with a local LLM")
    parser.add_argument("path", nargs="?", type=Path, help="JSON file of messages (default: stdin)")
    parser.add_argument("--output", "-o", type=Path, help="Write the summary here instead of stdout")
    parser.add_argument("--api", help="Completion backend: lmstudio, openai or anthropic")
    parser.add_argument("--model", help="Model name to request")
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    try:
        records = _read_records(args.path)
    except (OSError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.error("Cannot read messages from %s: %s", args.path or "stdin", exc)
        return 2
    messages = format_structured_many(records)
    logger.info("Loaded %d messages", len(messages))

    summarizer = _build_summarizer(settings, args.api, args.model)
    result = await summarizer.summarize_chunks(summarizer.chunk(messages))

    if args.output:
        args.output.write_text(result.summary, encoding="utf-8")
        logger.info("Summary saved to %s", args.output)
    else:
        print(result.summary)

    logger.info(
        "Done: %d chunks, %d batches, %d completion calls",
        result.stats.chunk_count,
        result.stats.batch_count,
        result.stats.completion_calls,
    )
    return 1 if result.failed else 0


def run() -> None:
    load_dotenv()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
