from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float


class CacheStore:
    """In-process get-or-compute store with per-entry expiry.

    Misses on the same key are coalesced behind a per-key lock, so a slow
    compute only blocks callers waiting for that key. The store-wide lock
    guards the dictionaries and is never held while ``compute`` runs.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._key_locks: Dict[str, Lock] = {}
        self._lock = Lock()
        self._generation = 0

    def fetch(self, key: str, ttl: float, compute: Callable[[], T]) -> T:
        found, value = self._lookup(key)
        if found:
            return value

        with self._key_lock(key):
            # Another caller may have populated the key while we waited.
            found, value = self._lookup(key)
            if found:
                return value

            with self._lock:
                generation = self._generation

            logger.info("Cache miss", extra={"cache_key": key})
            value = compute()

            with self._lock:
                if generation == self._generation:
                    self._entries[key] = CacheEntry(
                        key=key,
                        value=copy.deepcopy(value),
                        expires_at=self._clock() + ttl,
                    )
                else:
                    logger.info("Cache flushed during compute; not storing", extra={"cache_key": key})
            return value

    def flush(self) -> int:
        """Drop every entry and return how many were discarded."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.info("Cache flushed", extra={"result_count": count})
        return count

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        found, _ = self._lookup(key)
        return found

    def _lookup(self, key: str) -> tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return False, None
            return True, copy.deepcopy(entry.value)

    def _key_lock(self, key: str) -> Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = Lock()
                self._key_locks[key] = lock
            return lock


@lru_cache
def build_default_cache(clock: Optional[Callable[[], float]] = None) -> CacheStore:
    return CacheStore(clock=clock or time.monotonic)
