"""In-process response cache keyed by the normalized review request.

Entries expire by TTL on read and are evicted oldest-inserted-first on
write. Nothing is persisted across restarts.

The cache is plain shared state with no lock: it is only safe because every
get/put runs to completion on the event loop without awaiting. Guard it with
a lock before sharing it across threads.
"""

from __future__ import annotations

import hashlib
import json
import time
from typing import Callable, Optional

from ..models.request import ReviewRequest
from ..models.result import AgentReviewResult, CacheEntry


def _now_ms() -> float:
    return time.time() * 1000


def build_cache_key(request: ReviewRequest, agent: str, model: str) -> str:
    """Derive a deterministic key from the prepared request, agent and model."""
    payload = {
        "agent": agent,
        "content": request.content,
        "focus": list(request.focus or []),
        "style": request.style,
        "review_type": request.review_type,
        "time_budget_seconds": request.time_budget_seconds,
        "model": model,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ResponseCache:
    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or _now_ms
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str, ttl_ms: int) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp > ttl_ms:
            del self._entries[key]
            return None
        return entry.model_copy(deep=True)

    def put(self, key: str, result: AgentReviewResult, max_entries: int) -> None:
        stored = result.model_copy(deep=True, update={"cache_status": None})
        # Re-inserting moves the key to the freshest end of the eviction order.
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(timestamp=self._clock(), result=stored)

        while len(self._entries) > max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
