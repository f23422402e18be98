# File: page_scout/utils.py
"""page_scout.utils: address checks, origin keys, storage keys and the millisecond clock."""

from __future__ import annotations

import time
from typing import Callable, Iterable, Optional, Sequence
from urllib.parse import urlparse

from page_scout.logger import logger

__all__: Sequence[str] = (
    "UNKNOWN_ORIGIN",
    "ARCHIVE_PREFIX",
    "RUN_PREFIX",
    "LAST_RUN_KEY",
    "SESSION_LAST_KEY",
    "SESSION_BY_SURFACE_KEY",
    "is_injectable_url",
    "origin_key",
    "make_key",
    "key_timestamp",
    "MonotonicClock",
)

UNKNOWN_ORIGIN = "(unknown url)"

ARCHIVE_PREFIX = "archive:"
RUN_PREFIX = "run:"
LAST_RUN_KEY = "run:last"

SESSION_LAST_KEY = "lastResult"
SESSION_BY_SURFACE_KEY = "lastBySurface"


def is_injectable_url(url: Optional[str], schemes: Iterable[str] = ("http", "https")) -> bool:
    """Только сетевые адреса (http/https) допускают инъекцию; about:, file:, chrome:// и т.п. отвергаются."""
    if not url:
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError as exc:
        logger.debug("Unparsable address %r: %s", url, exc)
        return False
    allowed = {s.lower() for s in schemes}
    return parsed.scheme.lower() in allowed and bool(parsed.netloc)


def origin_key(*candidates: Optional[str]) -> str:
    """Первый непустой URL из кандидатов или UNKNOWN_ORIGIN."""
    for url in candidates:
        if url:
            return url
    return UNKNOWN_ORIGIN


def make_key(prefix: str, timestamp: int) -> str:
    return f"{prefix}{timestamp}"


def key_timestamp(key: str, prefix: str) -> Optional[int]:
    """Числовой суффикс ключа вида ``prefix<ts>``; None, если суффикс не число."""
    if not key.startswith(prefix):
        return None
    suffix = key[len(prefix):]
    return int(suffix) if suffix.isdigit() else None


class MonotonicClock:
    """Millisecond epoch clock that never repeats or goes backwards.

    Durable keys are ``prefix + timestamp``; two scans landing in the same
    millisecond must still get distinct keys.
    """

    def __init__(self, source: Callable[[], float] = time.time) -> None:
        self._source = source
        self._last = 0

    def __call__(self) -> int:
        now = int(self._source() * 1000)
        if now <= self._last:
            now = self._last + 1
        self._last = now
        return now
