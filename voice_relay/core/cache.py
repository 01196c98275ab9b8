"""Content-addressed, TTL-bound memoization of transcription results.

WHY: Users forward the same voice note to the bot, or resend a video after
a hiccup. Deepgram bills per audio minute, so identical audio with
identical options should be transcribed once per day, not once per request.

HOW: The key is a SHA-256 digest over the SHA-256 of the audio bytes and
the canonical JSON of TranscriptionOptions. Entries live in an OrderedDict
(recency order, for the optional LRU cap) and carry an absolute expires_at.
Expiry is checked on every lookup, and a min-heap of (expires_at, key) lets
sweep_expired() drop everything past its deadline in one pass; the server
runs periodic_sweep() as a background task for that.

RULES:
- One instance per process, created at startup and injected into the pipeline
- Same audio + same options → same key; any difference → different key
- A hit increments hits and never calls compute
- A miss calls compute exactly once; concurrent identical misses are not merged
- A failing compute propagates and stores nothing
- Mutations never await, so they are atomic on the asyncio event loop
- max_entries=None means TTL-only eviction
"""

from __future__ import annotations

import asyncio
import hashlib
import heapq
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from voice_relay.api.models import TranscriptionOptions, TranscriptionResult
from voice_relay.config import CACHE_SWEEP_INTERVAL_S, CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A stored result and its absolute expiry (epoch seconds)."""

    result: TranscriptionResult
    expires_at: float


@dataclass(frozen=True)
class CacheStatus:
    """Read-only snapshot of cache counters."""

    size: int
    hits: int
    misses: int

    def as_dict(self) -> Dict[str, int]:
        return {"size": self.size, "hits": self.hits, "misses": self.misses}


class TranscriptionCache:
    """In-memory transcription cache with TTL expiry and an optional LRU cap.

    RULES:
    - get_or_compute() is the only entry point the pipeline uses
    - get()/put() are exposed for tests and for callers that key manually
    - Expired entries are never returned, swept or not
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_entries: Optional[int] = None,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive or None")
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._expiry_heap: List[Tuple[float, str]] = []
        self.hits = 0
        self.misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def make_key(audio: bytes, options: TranscriptionOptions) -> str:
        """Derive the content-addressed key for (audio, options)."""
        audio_digest = hashlib.sha256(audio).hexdigest()
        material = "{}\0{}".format(audio_digest, options.canonical())
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[TranscriptionResult]:
        """Return the live result for key, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= time.time():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.result

    def put(self, key: str, result: TranscriptionResult) -> None:
        """Store result under key with expires_at = now + TTL."""
        expires_at = time.time() + self._ttl_seconds
        self._entries[key] = CacheEntry(result=result, expires_at=expires_at)
        self._entries.move_to_end(key)
        heapq.heappush(self._expiry_heap, (expires_at, key))

        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted least-recently-used cache entry %s", evicted[:12])

        # Heap items for evicted or overwritten keys linger until their deadline
        if len(self._expiry_heap) > 2 * len(self._entries) + 64:
            self._rebuild_heap()

    async def get_or_compute(
        self,
        audio: bytes,
        options: TranscriptionOptions,
        compute: Callable[[], Awaitable[TranscriptionResult]],
    ) -> TranscriptionResult:
        """Return the cached result for (audio, options) or compute and store it.

        WHY: Wraps the remote transcription call so repeat requests are free.

        HOW: Looks up the key synchronously. On a miss, awaits compute() and
        stores the result synchronously after it returns, so no other request
        can observe a half-written entry.

        RULES:
        - compute is awaited at most once per call
        - Exceptions from compute propagate; nothing is cached
        """
        key = self.make_key(audio, options)

        cached = self.get(key)
        if cached is not None:
            self.hits += 1
            logger.info("Transcription cache hit (%s)", key[:12])
            return cached

        self.misses += 1
        logger.info("Transcription cache miss (%s)", key[:12])
        result = await compute()
        self.put(key, result)
        return result

    def sweep_expired(self) -> int:
        """Remove every entry whose deadline has passed.

        HOW: Pops heap items while the earliest deadline is due. A heap item
        only removes its entry if the deadlines still match, so items left
        behind by overwritten or evicted keys are discarded harmlessly.

        Returns:
            Number of entries removed.
        """
        now = time.time()
        removed = 0
        while self._expiry_heap and self._expiry_heap[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiry_heap)
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at == expires_at:
                del self._entries[key]
                removed += 1
        if removed:
            logger.info("Swept %d expired transcription(s) from cache", removed)
        return removed

    def status(self) -> CacheStatus:
        return CacheStatus(size=len(self._entries), hits=self.hits, misses=self.misses)

    def clear(self) -> None:
        self._entries.clear()
        self._expiry_heap.clear()

    def _rebuild_heap(self) -> None:
        self._expiry_heap = [
            (entry.expires_at, key) for key, entry in self._entries.items()
        ]
        heapq.heapify(self._expiry_heap)


async def periodic_sweep(
    cache: TranscriptionCache,
    interval_s: float = CACHE_SWEEP_INTERVAL_S,
) -> None:
    """Sweep expired cache entries every interval_s seconds, until cancelled."""
    while True:
        await asyncio.sleep(interval_s)
        cache.sweep_expired()
