"""Structured JSON logging for the liked-track swiper.

One JSON object per line on stderr.  Callers attach context through
``extra=``; the formatter lifts the known keys (track id, paging window,
upstream status, latency, swipe direction) into the payload.

Bearer tokens are never written as-is; log ``token_fingerprint(token)``
instead.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import sys
import time
from typing import Any

_EXTRA_KEYS = ("track_id", "offset", "limit", "status", "latency_ms", "direction", "token")


class _JsonFormatter(logging.Formatter):
    """Emits one JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge any extra keys attached by callers
        for key in _EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                payload[key] = val

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            payload["exception"] = record.exc_text

        return json.dumps(payload, default=str)


def setup_logging(level: str | None = None) -> None:
    """Configure root logger with JSON formatter to stderr.

    ``level`` falls back to the ``LOG_LEVEL`` environment variable, then INFO.
    """
    root = logging.getLogger()
    if root.handlers:
        return  # already configured

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def token_fingerprint(token: str | None) -> str | None:
    """Return a short SHA-256 prefix identifying a token without revealing it."""
    if not token:
        return None
    return hashlib.sha256(token.encode()).hexdigest()[:12]


class RequestTimer:
    """Context manager that records upstream call latency.

    Usage::

        with RequestTimer() as t:
            resp = await client.get(url)
        logger.info("done", extra={"latency_ms": t.elapsed_ms})
    """

    def __init__(self) -> None:
        self._start: float = 0.0
        self.elapsed_ms: float = 0.0

    def __enter__(self) -> RequestTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
