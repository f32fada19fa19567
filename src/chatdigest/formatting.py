"""Message normalization and compact one-line rendering."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Optional

_LOG = logging.getLogger(__name__)

MAX_BODY_CHARS = 200
MAX_QUOTE_CHARS = 60
SELF_AUTHOR = "You"
UNKNOWN_AUTHOR = "Unknown"


class FormatError(ValueError):
    """Raised when a raw record cannot be normalized into a Message."""


@dataclass(frozen=True)
class QuotedMessage:
    author: str
    body: str


@dataclass(frozen=True)
class Message:
    """A chat message in canonical form."""

    timestamp: datetime
    author: str
    body: str
    has_media: bool = False
    from_me: bool = False
    quoted: Optional[QuotedMessage] = None


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _short_author(message: Any) -> str:
    if getattr(message, "from_me", False):
        return SELF_AUTHOR
    author = str(getattr(message, "author", None) or UNKNOWN_AUTHOR)
    # "4915551234@c.us" -> "4915551234"
    if "@" in author:
        author = author.split("@")[0]
    return author


def format_compact(message: Any) -> Optional[str]:
    """Render *message* as one short line, or ``None`` if there is nothing to summarize.

    Media messages and messages with an empty body are always skipped, and so
    is anything that does not look like a :class:`Message` at all.
    """
    body = getattr(message, "body", None)
    if not isinstance(body, str) or not body.strip():
        return None
    if getattr(message, "has_media", False):
        return None
    timestamp = getattr(message, "timestamp", None)
    if not isinstance(timestamp, datetime):
        return None

    time_str = f"{timestamp.hour}:{timestamp.minute:02d}"
    text = _truncate(body, MAX_BODY_CHARS)

    reply_context = ""
    quoted = getattr(message, "quoted", None)
    if quoted is not None:
        preview = _truncate(quoted.body or "", MAX_QUOTE_CHARS)
        reply_context = f' [replying to {quoted.author}: "{preview}"]'

    return f"[{time_str}] {_short_author(message)}: {text}{reply_context}"


def _parse_timestamp(value: Any, tz: Optional[tzinfo]) -> datetime:
    if isinstance(value, datetime):
        return value.astimezone(tz) if tz is not None and value.tzinfo else value
    if isinstance(value, bool):
        raise FormatError(f"invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=tz)
        except (OverflowError, OSError, ValueError) as exc:
            raise FormatError(f"invalid timestamp: {value!r}") from exc
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            number = float(raw)
        except ValueError:
            number = None
        if number is not None:
            return _parse_timestamp(number, tz)
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise FormatError(f"invalid timestamp: {value!r}") from exc
        # Aware values render in local time (or tz), like epoch seconds
        return parsed.astimezone(tz) if parsed.tzinfo else parsed
    raise FormatError(f"invalid timestamp: {value!r}")


def format_structured(raw: Any, tz: Optional[tzinfo] = None) -> Message:
    """Normalize a raw WhatsApp Web style record into a :class:`Message`.

    Args:
        raw: A ``Message`` (returned unchanged) or a mapping with ``timestamp``,
            ``body``, ``fromMe``, ``hasMedia``, ``author`` and either
            ``_data`` (``notifyName``, ``quotedMsg``) or a top-level
            ``quotedMsg`` (``author``, ``body``) as in saved exports.
        tz: Timezone used to render timestamps; local time when omitted.

    Raises:
        FormatError: The record is not a mapping or has no usable timestamp.
    """
    if isinstance(raw, Message):
        return raw
    if not isinstance(raw, Mapping):
        raise FormatError(f"expected a mapping, got {type(raw).__name__}")

    data = raw.get("_data")
    if not isinstance(data, Mapping):
        data = {}

    from_me = bool(raw.get("fromMe", False))
    if from_me:
        author = SELF_AUTHOR
    else:
        author = data.get("notifyName") or raw.get("author") or UNKNOWN_AUTHOR

    quoted = None
    # Saved exports carry {author, body} at the top level
    quoted_raw = raw.get("quotedMsg")
    if not isinstance(quoted_raw, Mapping):
        quoted_raw = data.get("quotedMsg")
    if isinstance(quoted_raw, Mapping):
        quoted = QuotedMessage(
            author=quoted_raw.get("author") or quoted_raw.get("notifyName") or UNKNOWN_AUTHOR,
            body=quoted_raw.get("body") or "",
        )

    body = raw.get("body")
    return Message(
        timestamp=_parse_timestamp(raw.get("timestamp"), tz),
        author=str(author),
        body=body if isinstance(body, str) else "",
        has_media=bool(raw.get("hasMedia", False)),
        from_me=from_me,
        quoted=quoted,
    )


def format_structured_many(raws: Iterable[Any], tz: Optional[tzinfo] = None) -> list[Message]:
    """Normalize many records, dropping the ones that cannot be normalized."""
    messages: list[Message] = []
    for index, raw in enumerate(raws):
        try:
            messages.append(format_structured(raw, tz=tz))
        except FormatError as exc:
            _LOG.warning("Skipping malformed message #%d: %s", index, exc)
    return messages
