"""Process-local semantic cache for evidence queries."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Sequence

import orjson

from evidence_rag.models.entities import DEFAULT_TOP_K, Query, Result
from evidence_rag.utils.hashing import hash_content

DEFAULT_MAX_ENTRIES = 1000
DEFAULT_TTL_SECONDS = 300.0


@dataclass(slots=True)
class CacheEntry:
    results: list[Result]
    expires_at: float


class SemanticCache:
    """Bounded, time-expiring memo of query results.

    Expiry is checked lazily on ``get``; nothing sweeps in the background.
    When full, the oldest *inserted* entry is evicted. Reads do not refresh
    an entry's position, so this is insertion-order eviction, not LRU.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> list[Result] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.results

    def set(self, key: str, results: Sequence[Result]) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
            self._entries[key] = CacheEntry(results=list(results), expires_at=self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def cache_key(query: Query) -> str:
    """Digest of the query parameters; filter key order does not matter."""
    filters = orjson.dumps(
        query.filters or {},
        option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS,
        default=str,
    ).decode("utf-8")
    parts = [
        query.organization_id,
        query.repository_id or "",
        query.query_text,
        str(query.top_k or DEFAULT_TOP_K),
        filters,
    ]
    return hash_content("|".join(parts))


__all__ = ["CacheEntry", "SemanticCache", "cache_key"]
