"""Per-chat message counters that decide when to auto-summarize."""

from __future__ import annotations

import logging

_LOG = logging.getLogger(__name__)


class AutoSummaryTracker:
    """Counts incoming messages per chat and fires every *threshold* messages."""

    def __init__(self, threshold: int = 250):
        if threshold < 1:
            raise ValueError("threshold must be a positive integer")
        self.threshold = threshold
        self._counters: dict[str, int] = {}

    @classmethod
    def from_settings(cls, settings) -> "AutoSummaryTracker":
        """Build a tracker using ``AUTO_SUMMARY_THRESHOLD`` from *settings*."""
        return cls(settings.auto_summary_threshold)

    def record(self, chat_id: str) -> bool:
        """
        Count one new message for *chat_id*.

        Returns:
            True when the chat just reached the threshold; its counter is
            reset to zero in that case
        """
        count = self._counters.get(chat_id, 0) + 1
        if count >= self.threshold:
            _LOG.info("Auto-summarization triggered for chat %s", chat_id)
            self._counters[chat_id] = 0
            return True
        self._counters[chat_id] = count
        return False

    def count(self, chat_id: str) -> int:
        return self._counters.get(chat_id, 0)

    def reset(self, chat_id: str) -> None:
        self._counters.pop(chat_id, None)
