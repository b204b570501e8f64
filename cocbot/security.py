"""Inbound message hygiene: per-sender rate limiting and text cleanup."""

import time
import unicodedata
from collections import deque
from typing import Deque, Dict

import structlog

from .logging_config import mask

logger = structlog.get_logger("cocbot.security")

MAX_INPUT_LENGTH = 10000

_KEPT_CONTROLS = frozenset("\n\r\t")


class RateLimiter:
    """Sliding-window request counter keyed by sender.

    Only used from the event loop thread and never awaits, so two
    message tasks cannot interleave inside allow().

    Args:
        max_requests: Requests a sender may make per window.
        window: Window length in seconds.
    """

    def __init__(self, max_requests: int = 30, window: float = 60):
        self.max_requests = max_requests
        self.window = window
        self._hits: Dict[str, Deque[float]] = {}

    @property
    def tracked_senders(self) -> int:
        return len(self._hits)

    def allow(self, sender: str) -> bool:
        """Count one request from sender; False once the sender is over the limit."""
        now = time.monotonic()
        self._expire(now - self.window)

        hits = self._hits.setdefault(sender, deque())
        if len(hits) >= self.max_requests:
            logger.warning(
                "rate_limit_exceeded",
                sender=mask(sender),
                requests_in_window=len(hits),
            )
            return False
        hits.append(now)
        return True

    def _expire(self, cutoff: float) -> None:
        for sender in list(self._hits):
            hits = self._hits[sender]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[sender]


def sanitize_input(text: str) -> str:
    """Drop control and format characters (bidi overrides included), cap the length.

    Newlines, carriage returns and tabs survive.
    """
    cleaned = "".join(
        ch for ch in text
        if ch in _KEPT_CONTROLS or unicodedata.category(ch)[0] != "C"
    )
    return cleaned[:MAX_INPUT_LENGTH]
