"""Tests for TranscriptionCache: keying, hit/miss, expiry, sweep, LRU cap.

WHY: The cache decides whether a paid Deepgram call happens. A wrong key
means wrong transcripts; a missed expiry means unbounded memory.

RULES:
- Time-dependent tests use monkeypatch to control time.time()
- Coroutines run through asyncio.run (no async test plugin)
"""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from voice_relay.api.models import LanguageMode, TranscriptionOptions, TranscriptionResult
from voice_relay.core.cache import TranscriptionCache, periodic_sweep
from voice_relay.errors import UpstreamProviderError

OGG = TranscriptionOptions(mime_type="audio/ogg")
RESULT = TranscriptionResult(transcript="Hi.", confidence=0.9, detected_language="en")


def _compute(result=RESULT):
    return AsyncMock(return_value=result)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class TestMakeKey:

    def test_same_inputs_same_key(self):
        assert TranscriptionCache.make_key(b"abc", OGG) == TranscriptionCache.make_key(
            b"abc", TranscriptionOptions(mime_type="audio/ogg")
        )

    def test_audio_changes_key(self):
        assert TranscriptionCache.make_key(b"abc", OGG) != TranscriptionCache.make_key(b"abd", OGG)

    def test_each_option_changes_key(self):
        base = TranscriptionCache.make_key(b"abc", OGG)
        variants = [
            TranscriptionOptions(mime_type="video/mp4"),
            TranscriptionOptions(mime_type="audio/ogg", smart_format=False),
            TranscriptionOptions(mime_type="audio/ogg", paragraph=False),
            TranscriptionOptions(mime_type="audio/ogg", model="nova-3"),
            TranscriptionOptions(mime_type="audio/ogg", language_mode=LanguageMode.MULTI),
            TranscriptionOptions(
                mime_type="audio/ogg", language_mode=LanguageMode.FIXED, language="ru"
            ),
        ]
        keys = {TranscriptionCache.make_key(b"abc", options) for options in variants}
        assert base not in keys
        assert len(keys) == len(variants)

    def test_key_is_hex_sha256(self):
        key = TranscriptionCache.make_key(b"", OGG)
        assert len(key) == 64
        int(key, 16)


# ---------------------------------------------------------------------------
# get_or_compute
# ---------------------------------------------------------------------------


class TestGetOrCompute:

    def test_second_identical_request_is_a_hit(self):
        cache = TranscriptionCache(ttl_seconds=60)
        compute = _compute()

        first = asyncio.run(cache.get_or_compute(b"audio", OGG, compute))
        second = asyncio.run(cache.get_or_compute(b"audio", OGG, compute))

        assert first == second == RESULT
        assert compute.await_count == 1
        assert cache.hits == 1
        assert cache.misses == 1

    def test_different_options_compute_separately(self):
        cache = TranscriptionCache(ttl_seconds=60)
        compute = _compute()

        asyncio.run(cache.get_or_compute(b"audio", OGG, compute))
        asyncio.run(cache.get_or_compute(b"audio", TranscriptionOptions(mime_type="video/mp4"), compute))

        assert compute.await_count == 2
        assert cache.misses == 2
        assert len(cache) == 2

    def test_failed_compute_stores_nothing(self):
        cache = TranscriptionCache(ttl_seconds=60)
        failing = AsyncMock(side_effect=UpstreamProviderError(503, "busy"))

        with pytest.raises(UpstreamProviderError):
            asyncio.run(cache.get_or_compute(b"audio", OGG, failing))
        assert len(cache) == 0

        compute = _compute()
        asyncio.run(cache.get_or_compute(b"audio", OGG, compute))
        assert compute.await_count == 1

    def test_concurrent_identical_misses_are_not_merged(self):
        cache = TranscriptionCache(ttl_seconds=60)
        calls = []

        async def slow_compute():
            calls.append(1)
            await asyncio.sleep(0.01)
            return RESULT

        async def both():
            return await asyncio.gather(
                cache.get_or_compute(b"audio", OGG, slow_compute),
                cache.get_or_compute(b"audio", OGG, slow_compute),
            )

        results = asyncio.run(both())
        assert results == [RESULT, RESULT]
        assert len(calls) == 2
        assert len(cache) == 1


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


class TestExpiry:

    def test_entry_live_before_ttl(self, monkeypatch):
        cache = TranscriptionCache(ttl_seconds=60)
        monkeypatch.setattr(time, "time", lambda: 100.0)
        cache.put("k", RESULT)

        monkeypatch.setattr(time, "time", lambda: 159.0)
        assert cache.get("k") == RESULT

    def test_entry_expired_on_lookup(self, monkeypatch):
        cache = TranscriptionCache(ttl_seconds=60)
        monkeypatch.setattr(time, "time", lambda: 100.0)
        cache.put("k", RESULT)

        monkeypatch.setattr(time, "time", lambda: 160.0)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_expired_entry_is_recomputed(self, monkeypatch):
        cache = TranscriptionCache(ttl_seconds=60)
        compute = _compute()
        monkeypatch.setattr(time, "time", lambda: 100.0)
        asyncio.run(cache.get_or_compute(b"audio", OGG, compute))

        monkeypatch.setattr(time, "time", lambda: 200.0)
        asyncio.run(cache.get_or_compute(b"audio", OGG, compute))

        assert compute.await_count == 2
        assert cache.hits == 0

    def test_sweep_removes_only_expired(self, monkeypatch):
        cache = TranscriptionCache(ttl_seconds=60)
        monkeypatch.setattr(time, "time", lambda: 100.0)
        cache.put("old-1", RESULT)
        cache.put("old-2", RESULT)
        monkeypatch.setattr(time, "time", lambda: 130.0)
        cache.put("fresh", RESULT)

        monkeypatch.setattr(time, "time", lambda: 161.0)
        assert cache.sweep_expired() == 2
        assert len(cache) == 1
        assert cache.get("fresh") == RESULT

    def test_sweep_respects_overwritten_deadline(self, monkeypatch):
        cache = TranscriptionCache(ttl_seconds=60)
        monkeypatch.setattr(time, "time", lambda: 100.0)
        cache.put("k", RESULT)
        monkeypatch.setattr(time, "time", lambda: 150.0)
        cache.put("k", RESULT)

        monkeypatch.setattr(time, "time", lambda: 161.0)
        assert cache.sweep_expired() == 0
        assert cache.get("k") == RESULT

        monkeypatch.setattr(time, "time", lambda: 211.0)
        assert cache.sweep_expired() == 1

    def test_sweep_on_empty_cache(self):
        assert TranscriptionCache().sweep_expired() == 0

    def test_periodic_sweep_runs_until_cancelled(self, monkeypatch):
        cache = TranscriptionCache(ttl_seconds=60)
        monkeypatch.setattr(time, "time", lambda: 100.0)
        cache.put("k", RESULT)
        monkeypatch.setattr(time, "time", lambda: 500.0)

        async def scenario():
            task = asyncio.create_task(periodic_sweep(cache, interval_s=0.01))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert len(cache) == 0


# ---------------------------------------------------------------------------
# LRU cap and status
# ---------------------------------------------------------------------------


class TestLruCap:

    def test_unbounded_by_default(self):
        cache = TranscriptionCache(ttl_seconds=60)
        for i in range(100):
            cache.put(str(i), RESULT)
        assert len(cache) == 100

    def test_evicts_least_recently_used(self):
        cache = TranscriptionCache(ttl_seconds=60, max_entries=2)
        cache.put("a", RESULT)
        cache.put("b", RESULT)
        cache.get("a")
        cache.put("c", RESULT)

        assert cache.get("b") is None
        assert cache.get("a") == RESULT
        assert cache.get("c") == RESULT

    def test_rejects_non_positive_cap(self):
        with pytest.raises(ValueError):
            TranscriptionCache(max_entries=0)


class TestStatus:

    def test_status_and_clear(self):
        cache = TranscriptionCache(ttl_seconds=60)
        compute = _compute()
        asyncio.run(cache.get_or_compute(b"a", OGG, compute))
        asyncio.run(cache.get_or_compute(b"a", OGG, compute))

        assert cache.status().as_dict() == {"size": 1, "hits": 1, "misses": 1}

        cache.clear()
        status = cache.status()
        assert status.size == 0
        assert status.hits == 1
