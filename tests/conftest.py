"""Shared test fixtures for the voice_relay test suite.

WHY: The pipeline, server and polling tests all need the same stand-ins for
Telegram and Deepgram. Centralizing them keeps each test module focused on
behavior.

HOW: Fixtures wrap the fakes in fakes.py. The transcriber is an AsyncMock
whose transcribe_file returns a fixed TranscriptionResult.

RULES:
- No test touches the network; every HTTP client is faked or uses MockTransport
- Settings are built directly, never from the process environment
- Each fixture returns a fresh object (no shared state between tests)
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from fakes import BOT_TOKEN, DEEPGRAM_KEY, SAMPLE_RESULT, FakeTelegram
from voice_relay.config import Settings
from voice_relay.core.auth import expected_secret_for
from voice_relay.core.cache import TranscriptionCache
from voice_relay.core.pipeline import TranscriptionPipeline


@pytest.fixture
def settings() -> Settings:
    return Settings(telegram_bot_token=BOT_TOKEN, deepgram_api_key=DEEPGRAM_KEY)


@pytest.fixture
def secret() -> str:
    return expected_secret_for(BOT_TOKEN)


@pytest.fixture
def telegram() -> FakeTelegram:
    return FakeTelegram()


@pytest.fixture
def transcriber() -> AsyncMock:
    mock = AsyncMock()
    mock.transcribe_file = AsyncMock(return_value=SAMPLE_RESULT)
    return mock


@pytest.fixture
def cache() -> TranscriptionCache:
    return TranscriptionCache(ttl_seconds=60)


@pytest.fixture
def pipeline(telegram, transcriber, cache, settings) -> TranscriptionPipeline:
    return TranscriptionPipeline(telegram, transcriber, cache, settings)
