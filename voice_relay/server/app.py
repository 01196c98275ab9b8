"""FastAPI application exposing the Telegram webhook and a health check.

WHY: Telegram delivers updates by POSTing them to a public URL and expects
a quick 2xx; anything slower or non-2xx is retried. The transcription
itself takes seconds to minutes, so the endpoint has to authenticate,
validate and acknowledge immediately and do the real work afterwards.

HOW: create_app() wires the collaborators (Telegram client, Deepgram
client, cache, optional ffmpeg extractor) into a TranscriptionPipeline and
registers the routes. The webhook handler hands each validated update to
FastAPI BackgroundTasks, which runs the pipeline after the 200 response.
The lifespan opens the HTTP clients the app owns, starts the periodic
cache sweep, and registers the webhook when WEBHOOK_URL is set.

RULES:
- POST /api/bot: 401 on failed secret check, 500 on an unparsable body,
  otherwise 200 "OK" (pipeline failures are answered in chat, not in HTTP)
- GET /api/bot: 200 "Telegram Bot is active!" with no authentication
- Other methods on /api/bot fail authentication (401)
- Updates without a message are acknowledged and ignored
- Injected collaborators are used as-is; the lifespan only enters clients
  it created itself
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, List, Optional

import httpx
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from voice_relay import __version__
from voice_relay.api.client import DeepgramClient
from voice_relay.config import WEBHOOK_PATH, Settings, load_settings, webhook_endpoint
from voice_relay.core.auth import expected_secret_for, verify_request
from voice_relay.core.cache import TranscriptionCache, periodic_sweep
from voice_relay.core.extraction import AudioExtractor
from voice_relay.core.pipeline import TranscriptionPipeline
from voice_relay.errors import AuthError
from voice_relay.server.models import CacheStatusResponse, HealthResponse
from voice_relay.telegram.client import TelegramAPIError, TelegramClient
from voice_relay.telegram.models import Update

logger = logging.getLogger(__name__)

ACTIVE_TEXT = "Telegram Bot is active!"


def create_app(
    settings: Settings,
    telegram: Optional[Any] = None,
    transcriber: Optional[Any] = None,
    extractor: Optional[AudioExtractor] = None,
    cache: Optional[TranscriptionCache] = None,
) -> FastAPI:
    """Build the FastAPI app for the given settings.

    Args:
        settings: Validated runtime configuration.
        telegram: Telegram client; a TelegramClient is created when omitted.
        transcriber: Transcription client; a DeepgramClient is created when omitted.
        extractor: Audio extractor; created from settings.extract_audio when omitted.
        cache: Transcription cache; created from the cache settings when omitted.

    Returns:
        The configured FastAPI application. The pipeline is available as
        app.state.pipeline.
    """
    owned_clients: List[Any] = []
    if telegram is None:
        telegram = TelegramClient(settings.telegram_bot_token, api_url=settings.telegram_api_url)
        owned_clients.append(telegram)
    if transcriber is None:
        transcriber = DeepgramClient(settings.deepgram_api_key, base_url=settings.deepgram_base_url)
        owned_clients.append(transcriber)
    if extractor is None and settings.extract_audio:
        extractor = AudioExtractor()
    if cache is None:
        cache = TranscriptionCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )

    pipeline = TranscriptionPipeline(telegram, transcriber, cache, settings, extractor=extractor)
    secret = expected_secret_for(settings.telegram_bot_token)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open owned clients, start the cache sweep, register the webhook."""
        async with AsyncExitStack() as stack:
            for client in owned_clients:
                await stack.enter_async_context(client)

            task = asyncio.create_task(periodic_sweep(cache, settings.cache_sweep_interval_s))

            if settings.webhook_url:
                try:
                    await telegram.set_webhook(
                        webhook_endpoint(settings.webhook_url), secret_token=secret
                    )
                except (TelegramAPIError, httpx.HTTPError):
                    logger.exception("Webhook registration failed; updates may not arrive")

            yield

            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        lifespan=lifespan,
        title="Voice Relay",
        description=(
            "Telegram webhook that transcribes voice messages, audio files, "
            "videos and video notes with Deepgram and replies in chat."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.cache = cache

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> PlainTextResponse:
        return PlainTextResponse("Unauthorized", status_code=401)

    # -----------------------------------------------------------------------
    # Endpoints: Webhook
    # -----------------------------------------------------------------------

    @app.post(
        WEBHOOK_PATH,
        response_class=PlainTextResponse,
        tags=["webhook"],
        summary="Receive a Telegram update",
        description=(
            "Telegram calls this endpoint with every new update. The request "
            "must carry the X-Telegram-Bot-Api-Secret-Token header. The update "
            "is processed after the response is sent."
        ),
        responses={
            401: {"description": "Missing or wrong secret token"},
            500: {"description": "Body is not a Telegram update"},
        },
    )
    async def receive_update(request: Request, background_tasks: BackgroundTasks) -> PlainTextResponse:
        verify_request(request.method, request.headers, secret)

        try:
            payload = await request.json()
        except ValueError:
            logger.error("Webhook body is not valid JSON")
            return PlainTextResponse("Internal Server Error", status_code=500)

        if not isinstance(payload, dict):
            logger.error("Webhook body is not a JSON object")
            return PlainTextResponse("Internal Server Error", status_code=500)

        try:
            update = Update.model_validate(payload)
        except ValidationError as exc:
            logger.error("Webhook body is not a Telegram update: %s", exc)
            return PlainTextResponse("Internal Server Error", status_code=500)

        if update.message is None:
            logger.debug("Acknowledging update %s without a message", update.update_id)
        else:
            background_tasks.add_task(pipeline.process_update, update)
        return PlainTextResponse("OK")

    @app.get(
        WEBHOOK_PATH,
        response_class=PlainTextResponse,
        tags=["webhook"],
        summary="Webhook liveness probe",
    )
    async def webhook_status() -> PlainTextResponse:
        return PlainTextResponse(ACTIVE_TEXT)

    @app.api_route(
        WEBHOOK_PATH,
        methods=["PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        response_class=PlainTextResponse,
        include_in_schema=False,
    )
    async def reject_method(request: Request) -> PlainTextResponse:
        verify_request(request.method, request.headers, secret)
        return PlainTextResponse("Unauthorized", status_code=401)

    # -----------------------------------------------------------------------
    # Endpoints: Health
    # -----------------------------------------------------------------------

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
        summary="Health check",
        description="Returns service status, version and transcription cache counters.",
    )
    async def health_check() -> HealthResponse:
        status = cache.status()
        return HealthResponse(
            status="ok",
            version=__version__,
            cache=CacheStatusResponse(size=status.size, hits=status.hits, misses=status.misses),
        )

    return app


def run_api(settings: Optional[Settings] = None) -> None:
    """Serve the webhook app with uvicorn."""
    import uvicorn

    settings = settings or load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
