"""Command-line interface for the voice relay.

WHY: The relay runs in three ways: as a webhook server behind a public URL,
as a long-polling loop on a developer machine, and as a one-off command to
point Telegram at the server. One entry point with subcommands covers all
three and keeps logging and configuration setup in one place.

HOW: argparse with subcommands. main() configures logging, loads Settings
from the environment (.env included), and dispatches. Async work runs via
asyncio.run().

RULES:
- serve: FastAPI app under uvicorn (registers the webhook if WEBHOOK_URL is set)
- poll: deletes the webhook, then long-polls getUpdates
- set-webhook [URL]: registers URL (or WEBHOOK_URL) with the derived secret
- Configuration errors print "Error: ..." to stderr and exit with status 1
- httpx/httpcore loggers are held at WARNING (request URLs contain the bot token)
- Python 3.9 compatible: no match/case, no X | Y unions
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx

from voice_relay import __version__
from voice_relay.api.client import DeepgramClient
from voice_relay.config import Settings, load_settings, webhook_endpoint
from voice_relay.core.auth import expected_secret_for
from voice_relay.core.cache import TranscriptionCache, periodic_sweep
from voice_relay.core.extraction import AudioExtractor
from voice_relay.core.pipeline import TranscriptionPipeline
from voice_relay.errors import ConfigurationError
from voice_relay.server.app import run_api
from voice_relay.server.polling import run_polling
from voice_relay.telegram.client import TelegramAPIError, TelegramClient

logger = logging.getLogger(__name__)

_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _poll(settings: Settings) -> None:
    """Run the pipeline against getUpdates until interrupted."""
    cache = TranscriptionCache(
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )
    extractor = AudioExtractor() if settings.extract_audio else None

    async with TelegramClient(settings.telegram_bot_token, api_url=settings.telegram_api_url) as telegram, \
            DeepgramClient(settings.deepgram_api_key, base_url=settings.deepgram_base_url) as deepgram:
        await telegram.delete_webhook()
        pipeline = TranscriptionPipeline(telegram, deepgram, cache, settings, extractor=extractor)

        sweep = asyncio.create_task(periodic_sweep(cache, settings.cache_sweep_interval_s))
        try:
            await run_polling(telegram, pipeline)
        finally:
            sweep.cancel()
            try:
                await sweep
            except asyncio.CancelledError:
                pass


async def _set_webhook(settings: Settings, url: str) -> None:
    endpoint = webhook_endpoint(url)
    async with TelegramClient(settings.telegram_bot_token, api_url=settings.telegram_api_url) as telegram:
        await telegram.set_webhook(endpoint, secret_token=expected_secret_for(settings.telegram_bot_token))
    print("Webhook set to {}".format(endpoint), file=sys.stderr)


def _fail(message: str) -> None:
    print("Error: {}".format(message), file=sys.stderr)
    sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable — tests can inspect the parser without starting a server.
    """
    parser = argparse.ArgumentParser(
        prog="voice_relay",
        description="Telegram bot that transcribes voice messages and videos with Deepgram.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "serve",
        help="Run the webhook server (uvicorn). Uses HOST and PORT.",
    )
    subparsers.add_parser(
        "poll",
        help="Delete the webhook and long-poll Telegram for updates.",
    )

    set_webhook = subparsers.add_parser(
        "set-webhook",
        help="Register the webhook URL with Telegram.",
    )
    set_webhook.add_argument(
        "url",
        nargs="?",
        default=None,
        help="Public base URL of the server. Defaults to WEBHOOK_URL.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the voice-relay console script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        _fail(str(e))
        return

    if args.command == "serve":
        run_api(settings)
    elif args.command == "poll":
        try:
            asyncio.run(_poll(settings))
        except KeyboardInterrupt:
            print("\nStopped.", file=sys.stderr)
            sys.exit(130)
    elif args.command == "set-webhook":
        url = args.url or settings.webhook_url
        if not url:
            _fail("No URL given and WEBHOOK_URL is not set")
            return
        try:
            asyncio.run(_set_webhook(settings, url))
        except (TelegramAPIError, httpx.HTTPError) as e:
            _fail(str(e))


if __name__ == "__main__":
    main()
