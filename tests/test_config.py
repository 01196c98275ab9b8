"""Tests for environment loading and startup validation."""

from __future__ import annotations

import pytest

from voice_relay.config import (
    CACHE_TTL_SECONDS,
    MAX_FILE_SIZE_MB,
    MESSAGE_LIMIT,
    Settings,
    load_settings,
    webhook_endpoint,
)
from voice_relay.errors import ConfigurationError

REQUIRED = {"TELEGRAM_BOT_TOKEN": "123:abc", "DEEPGRAM_API_KEY": "dg"}


def _env(**overrides):
    env = dict(REQUIRED)
    env.update(overrides)
    return env


class TestRequiredSecrets:

    def test_both_missing_are_named(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings({})
        assert "TELEGRAM_BOT_TOKEN" in str(exc_info.value)
        assert "DEEPGRAM_API_KEY" in str(exc_info.value)

    def test_blank_counts_as_missing(self):
        with pytest.raises(ConfigurationError, match="DEEPGRAM_API_KEY"):
            load_settings(_env(DEEPGRAM_API_KEY="   "))

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            load_settings({"TELEGRAM_BOT_TOKEN": "x"})


class TestDefaults:

    def test_defaults(self):
        settings = load_settings(_env())
        assert settings.telegram_bot_token == "123:abc"
        assert settings.max_file_size_mb == MAX_FILE_SIZE_MB == 20
        assert settings.max_file_size_bytes == 20 * 1024 * 1024
        assert settings.message_limit == MESSAGE_LIMIT == 4000
        assert settings.cache_ttl_seconds == CACHE_TTL_SECONDS == 86400
        assert settings.cache_max_entries is None
        assert settings.deepgram_model == "nova-2"
        assert settings.locale == "en"
        assert settings.extract_audio is False
        assert settings.webhook_url is None

    def test_settings_are_frozen(self):
        settings = Settings(telegram_bot_token="t", deepgram_api_key="k")
        with pytest.raises(Exception):
            settings.locale = "ru"


class TestOverrides:

    def test_numeric_overrides(self):
        settings = load_settings(_env(
            MAX_FILE_SIZE_MB="5",
            MESSAGE_LIMIT="1000",
            CACHE_TTL_SECONDS="60",
            CACHE_SWEEP_INTERVAL_S="2.5",
            CACHE_MAX_ENTRIES="50",
            PORT="9000",
        ))
        assert settings.max_file_size_bytes == 5 * 1024 * 1024
        assert settings.message_limit == 1000
        assert settings.cache_ttl_seconds == 60
        assert settings.cache_sweep_interval_s == 2.5
        assert settings.cache_max_entries == 50
        assert settings.port == 9000

    def test_zero_max_entries_means_unbounded(self):
        assert load_settings(_env(CACHE_MAX_ENTRIES="0")).cache_max_entries is None

    def test_bad_integer(self):
        with pytest.raises(ConfigurationError, match="MESSAGE_LIMIT"):
            load_settings(_env(MESSAGE_LIMIT="lots"))

    @pytest.mark.parametrize("name", ["MESSAGE_LIMIT", "MAX_FILE_SIZE_MB", "CACHE_TTL_SECONDS"])
    def test_non_positive_limits_are_rejected(self, name):
        with pytest.raises(ConfigurationError, match=name):
            load_settings(_env(**{name: "0"}))
        with pytest.raises(ConfigurationError, match=name):
            load_settings(_env(**{name: "-5"}))

    def test_locale(self):
        assert load_settings(_env(BOT_LOCALE="RU")).locale == "ru"
        with pytest.raises(ConfigurationError, match="BOT_LOCALE"):
            load_settings(_env(BOT_LOCALE="fr"))

    def test_urls_are_normalized(self):
        settings = load_settings(_env(
            TELEGRAM_API_URL="http://localhost:8081/",
            WEBHOOK_URL=" https://bot.example.com ",
        ))
        assert settings.telegram_api_url == "http://localhost:8081"
        assert settings.webhook_url == "https://bot.example.com"

    def test_extract_audio_requires_ffmpeg(self, monkeypatch):
        monkeypatch.setattr("voice_relay.config.ffmpeg_available", lambda: False)
        with pytest.raises(ConfigurationError, match="ffmpeg"):
            load_settings(_env(EXTRACT_AUDIO="true"))

    def test_extract_audio_with_ffmpeg(self, monkeypatch):
        monkeypatch.setattr("voice_relay.config.ffmpeg_available", lambda: True)
        assert load_settings(_env(EXTRACT_AUDIO="yes")).extract_audio is True


class TestWebhookEndpoint:

    def test_appends_path(self):
        assert webhook_endpoint("https://bot.example.com") == "https://bot.example.com/api/bot"
        assert webhook_endpoint("https://bot.example.com/") == "https://bot.example.com/api/bot"

    def test_keeps_full_url(self):
        assert webhook_endpoint("https://bot.example.com/api/bot") == "https://bot.example.com/api/bot"
