"""Token-budgeted summaries of group chat logs."""

from .formatting import Message, QuotedMessage, format_compact, format_structured
from .summarization import FALLBACK_MESSAGE, Summarizer

__all__ = [
    "Message",
    "QuotedMessage",
    "format_compact",
    "format_structured",
    "FALLBACK_MESSAGE",
    "Summarizer",
]
