"""
In-process cache for the RSS-backed sources.

Three age bands per entry:
- fresh (< fresh_ttl): served as is
- stale (< stale_ttl): served as is; optionally refreshed in a background
  thread that never blocks the caller
- expired: the caller loads synchronously and failures propagate

Entries are whole-value replacements keyed by source URL, so there is no
lock: concurrent callers may both load, and the last writer wins.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

from mareatigre.constants import CACHE_FRESH_SEC, CACHE_STALE_SEC

log = structlog.get_logger()


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    fetched_at: float


class FeedCache:
    def __init__(
        self,
        fresh_ttl: float = CACHE_FRESH_SEC,
        stale_ttl: float = CACHE_STALE_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.fresh_ttl = fresh_ttl
        self.stale_ttl = stale_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._refreshing: dict[str, threading.Thread] = {}

    def peek(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def age(self, key: str) -> float | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.fetched_at

    def get(
        self,
        key: str,
        loader: Callable[[], Any],
        refresher: Callable[[], Any] | None = None,
    ) -> Any:
        """
        Return the cached value for `key`, loading it when missing or expired.

        `refresher` is the background variant of `loader` (shorter timeout);
        it runs only while the entry is stale.
        """
        age = self.age(key)
        if age is not None:
            entry = self._entries[key]
            if age < self.fresh_ttl:
                log.debug("cache_fresh", key=key, age=round(age))
                return entry.value
            if age < self.stale_ttl:
                log.info("cache_stale", key=key, age=round(age))
                if refresher is not None:
                    self._refresh_in_background(key, refresher)
                return entry.value

        value = loader()
        self.put(key, value)
        return value

    def _refresh_in_background(self, key: str, refresher: Callable[[], Any]) -> None:
        running = self._refreshing.get(key)
        if running is not None and running.is_alive():
            return

        def _run() -> None:
            try:
                value = refresher()
            except Exception as exc:
                # The caller already has the stale value.
                log.debug("cache_refresh_failed", key=key, error=str(exc))
                return
            self.put(key, value)
            log.info("cache_refreshed", key=key)

        thread = threading.Thread(target=_run, name=f"refresh:{key}", daemon=True)
        self._refreshing[key] = thread
        thread.start()

    def join_refreshes(self, timeout: float | None = None) -> None:
        """Wait for in-flight background refreshes (tests, shutdown)."""
        for thread in list(self._refreshing.values()):
            thread.join(timeout)
