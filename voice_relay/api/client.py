"""Async HTTP client for the Deepgram pre-recorded transcription API.

WHY: The pipeline needs one call — bytes in, TranscriptionResult out — with
clear error types for the two ways it can go wrong: the provider refuses or
is unreachable (UpstreamProviderError), or it answers with an unexpected
shape (MalformedUpstreamResponseError).

HOW: Uses httpx.AsyncClient for non-blocking HTTP. DeepgramClient is an
async context manager — enter it to open an authenticated connection pool,
exit to close it. transcribe_file() POSTs the raw payload to /listen with
the query flags built from TranscriptionOptions.

RULES:
- Always use the async context manager (async with DeepgramClient(...) as dg:)
- Authentication is "Authorization: Token <key>"
- The payload is sent as the raw request body with Content-Type = mime type
- Non-2xx and transport errors raise UpstreamProviderError (never retried)
- Response validation is delegated to TranscriptionResult.from_response
"""

from __future__ import annotations

import logging

import httpx

from voice_relay.api.models import TranscriptionOptions, TranscriptionResult
from voice_relay.config import DEEPGRAM_BASE_URL
from voice_relay.errors import MalformedUpstreamResponseError, UpstreamProviderError

logger = logging.getLogger(__name__)

# Deepgram can take a while on long files; uploads are capped at 20 MiB upstream
_REQUEST_TIMEOUT_S = 300.0
_CONNECT_TIMEOUT_S = 30.0


class DeepgramClient:
    """Async client for Deepgram's POST /v1/listen endpoint.

    RULES:
    - Use as: async with DeepgramClient(api_key) as client: ...
    - base_url defaults to DEEPGRAM_BASE_URL
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or DEEPGRAM_BASE_URL).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> DeepgramClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Token {self._api_key}"},
            timeout=httpx.Timeout(_REQUEST_TIMEOUT_S, connect=_CONNECT_TIMEOUT_S),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "DeepgramClient must be used as an async context manager: "
                "async with DeepgramClient(api_key) as client: ..."
            )
        return self._client

    async def transcribe_file(
        self,
        audio: bytes,
        options: TranscriptionOptions,
    ) -> TranscriptionResult:
        """Transcribe an in-memory audio/video payload.

        WHY: Telegram media is small enough (≤ 20 MiB) to buffer whole, so
        the pre-recorded endpoint with a raw body is the simplest fit.

        HOW: POST /listen?{options} with the bytes as the body. The JSON
        response is parsed into a TranscriptionResult.

        RULES:
        - Raises UpstreamProviderError on transport errors and non-2xx
        - Raises MalformedUpstreamResponseError on non-JSON or missing structure

        Args:
            audio: Raw media bytes.
            options: Options that fully determine the transcription.

        Returns:
            The parsed TranscriptionResult.
        """
        client = self._ensure_client()
        params = options.to_query_params()

        logger.info(
            "Sending %d bytes (%s) to Deepgram, model=%s",
            len(audio), options.mime_type, options.model,
        )
        try:
            resp = await client.post(
                "/listen",
                params=params,
                content=audio,
                headers={"Content-Type": options.mime_type},
            )
        except httpx.HTTPError as exc:
            raise UpstreamProviderError(None, str(exc)) from exc

        if resp.status_code not in (200, 201):
            raise UpstreamProviderError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedUpstreamResponseError(
                "Deepgram returned a non-JSON body"
            ) from exc

        result = TranscriptionResult.from_response(data)
        logger.info(
            "Deepgram transcription received: %d chars, confidence=%.2f, language=%s",
            len(result.transcript), result.confidence, result.detected_language,
        )
        return result
