"""Configuration constants, environment loading, and startup validation.

WHY: Every tunable value (size limits, cache TTL, model name, locale) lives
in one place so it is easy to find and override. The two secrets the relay
cannot run without — the Telegram bot token and the Deepgram API key — are
validated once at startup so the process never serves traffic half-configured.

HOW: python-dotenv loads the .env file on import. Defaults are module-level
constants. load_settings() reads the environment into a frozen Settings
dataclass and raises ConfigurationError when a required secret is missing.

RULES:
- TELEGRAM_BOT_TOKEN and DEEPGRAM_API_KEY are required, never defaulted
- Default media size ceiling is 20 MiB (Telegram's getFile limit)
- Default outbound message budget is 4000 characters (Telegram allows 4096)
- Default cache TTL is 24 hours; the sweep runs every 5 minutes
- CACHE_MAX_ENTRIES unset or 0 means the cache is bounded by TTL only
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from voice_relay.core.extraction import ffmpeg_available
from voice_relay.errors import ConfigurationError

# Load .env from the working directory (in production, vars come from the environment)
load_dotenv()

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

TELEGRAM_API_URL = "https://api.telegram.org"
DEEPGRAM_BASE_URL = "https://api.deepgram.com/v1"
DEEPGRAM_MODEL = "nova-2"

MAX_FILE_SIZE_MB = 20
MESSAGE_LIMIT = 4000
LOW_CONFIDENCE_THRESHOLD = 0.6
SENTENCES_PER_PARAGRAPH = 3

CACHE_TTL_SECONDS = 24 * 60 * 60
CACHE_SWEEP_INTERVAL_S = 300.0

DEFAULT_LOCALE = "en"
SUPPORTED_LOCALES = frozenset({"en", "ru"})

WEBHOOK_PATH = "/api/bot"
SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration for the relay.

    Attributes:
        telegram_bot_token: Token issued by @BotFather.
        deepgram_api_key: Deepgram API key.
        telegram_api_url: Bot API root, overridable for local Bot API servers.
        deepgram_base_url: Deepgram REST root.
        deepgram_model: Model name passed to /listen.
        max_file_size_mb: Media size ceiling checked before download.
        message_limit: Character budget per outbound message.
        cache_ttl_seconds: Lifetime of a cached transcription.
        cache_sweep_interval_s: Period of the background expiry sweep.
        cache_max_entries: Optional LRU cap, None for TTL-only eviction.
        locale: Language of user-facing messages.
        extract_audio: Demux video containers with ffmpeg before upload.
        webhook_url: Public base URL; when set, the webhook is registered at startup.
        host: Bind address for the HTTP server.
        port: Bind port for the HTTP server.
    """

    telegram_bot_token: str
    deepgram_api_key: str
    telegram_api_url: str = TELEGRAM_API_URL
    deepgram_base_url: str = DEEPGRAM_BASE_URL
    deepgram_model: str = DEEPGRAM_MODEL
    max_file_size_mb: int = MAX_FILE_SIZE_MB
    message_limit: int = MESSAGE_LIMIT
    cache_ttl_seconds: int = CACHE_TTL_SECONDS
    cache_sweep_interval_s: float = CACHE_SWEEP_INTERVAL_S
    cache_max_entries: Optional[int] = None
    locale: str = DEFAULT_LOCALE
    extract_audio: bool = False
    webhook_url: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            "{} must be an integer, got {!r}".format(name, raw)
        ) from None


def _get_positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = _get_int(env, name, default)
    if value < 1:
        raise ConfigurationError(
            "{} must be at least 1, got {}".format(name, value)
        )
    return value


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            "{} must be a number, got {!r}".format(name, raw)
        ) from None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read and validate configuration from the environment.

    WHY: Missing secrets must abort startup with a clear message instead of
    failing on the first webhook call.

    HOW: Reads required secrets first and collects every missing name, then
    parses optional values with their defaults.

    RULES:
    - Raises ConfigurationError naming all missing required variables
    - Raises ConfigurationError for unparsable numbers or unknown locales
    - MAX_FILE_SIZE_MB, MESSAGE_LIMIT and CACHE_TTL_SECONDS must be at least 1
    - EXTRACT_AUDIO=true requires ffmpeg on PATH
    - environ=None means os.environ (explicit mapping is for tests)
    """
    env = os.environ if environ is None else environ

    required = {
        "TELEGRAM_BOT_TOKEN": env.get("TELEGRAM_BOT_TOKEN", "").strip(),
        "DEEPGRAM_API_KEY": env.get("DEEPGRAM_API_KEY", "").strip(),
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigurationError(
            "Required environment variables are not set: {}. "
            "Add them to the .env file or the deployment secrets.".format(
                ", ".join(missing)
            )
        )

    locale = env.get("BOT_LOCALE", DEFAULT_LOCALE).strip().lower() or DEFAULT_LOCALE
    if locale not in SUPPORTED_LOCALES:
        raise ConfigurationError(
            "BOT_LOCALE must be one of {}, got {!r}".format(
                ", ".join(sorted(SUPPORTED_LOCALES)), locale
            )
        )

    extract_audio = _get_bool(env, "EXTRACT_AUDIO", False)
    if extract_audio and not ffmpeg_available():
        raise ConfigurationError(
            "EXTRACT_AUDIO is enabled but ffmpeg was not found on PATH"
        )

    max_entries = _get_int(env, "CACHE_MAX_ENTRIES", 0)

    return Settings(
        telegram_bot_token=required["TELEGRAM_BOT_TOKEN"],
        deepgram_api_key=required["DEEPGRAM_API_KEY"],
        telegram_api_url=env.get("TELEGRAM_API_URL", TELEGRAM_API_URL).rstrip("/"),
        deepgram_base_url=env.get("DEEPGRAM_BASE_URL", DEEPGRAM_BASE_URL).rstrip("/"),
        deepgram_model=env.get("DEEPGRAM_MODEL", DEEPGRAM_MODEL).strip() or DEEPGRAM_MODEL,
        max_file_size_mb=_get_positive_int(env, "MAX_FILE_SIZE_MB", MAX_FILE_SIZE_MB),
        message_limit=_get_positive_int(env, "MESSAGE_LIMIT", MESSAGE_LIMIT),
        cache_ttl_seconds=_get_positive_int(env, "CACHE_TTL_SECONDS", CACHE_TTL_SECONDS),
        cache_sweep_interval_s=_get_float(env, "CACHE_SWEEP_INTERVAL_S", CACHE_SWEEP_INTERVAL_S),
        cache_max_entries=max_entries if max_entries > 0 else None,
        locale=locale,
        extract_audio=extract_audio,
        webhook_url=env.get("WEBHOOK_URL", "").strip() or None,
        host=env.get("HOST", "0.0.0.0"),
        port=_get_int(env, "PORT", 8000),
    )


def webhook_endpoint(public_url: str) -> str:
    """Full webhook URL for a public base URL ("https://host" → "https://host/api/bot")."""
    base = public_url.rstrip("/")
    if base.endswith(WEBHOOK_PATH):
        return base
    return base + WEBHOOK_PATH
