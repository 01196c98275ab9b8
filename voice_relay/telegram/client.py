"""Async HTTP client for the Telegram Bot API.

WHY: The relay needs five Bot API capabilities — send a message, resolve a
file id to a download URL, download the file, register the webhook, and (for
local development) long-poll for updates. A small typed client keeps the
pipeline free of URL building and envelope parsing.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Every method call is a
POST to {api_url}/bot{token}/{method} with a JSON body; the {"ok", "result",
"description"} envelope is unwrapped by _call(). File downloads use
{api_url}/file/bot{token}/{file_path}.

RULES:
- Always use the async context manager (async with TelegramClient(...) as tg:)
- ok=false responses raise TelegramAPIError with Telegram's description
- Transport errors propagate as httpx.HTTPError; callers decide the mapping
- The bot token is part of every URL, so URLs are never logged
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from voice_relay.config import TELEGRAM_API_URL
from voice_relay.telegram.models import Update

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT_S = 60.0
_CONNECT_TIMEOUT_S = 10.0


class TelegramAPIError(Exception):
    """Raised when the Bot API answers with ok=false.

    RULES:
    - Always include error_code and description
    - description is Telegram's human-readable reason (e.g. "Bad Request: file is too big")
    """

    def __init__(self, error_code: int, description: str) -> None:
        self.error_code = error_code
        self.description = description
        super().__init__(f"Telegram API error {error_code}: {description}")


class TelegramClient:
    """Async client for the Telegram Bot API.

    RULES:
    - Use as: async with TelegramClient(token) as client: ...
    - api_url defaults to https://api.telegram.org
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        token: str,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self._api_url = (api_url or TELEGRAM_API_URL).rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> TelegramClient:
        self._client = httpx.AsyncClient(
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
                "TelegramClient must be used as an async context manager: "
                "async with TelegramClient(token) as client: ..."
            )
        return self._client

    def _method_url(self, method: str) -> str:
        return f"{self._api_url}/bot{self._token}/{method}"

    async def _call(
        self,
        method: str,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """POST a Bot API method and return the unwrapped result.

        RULES:
        - Raises TelegramAPIError when ok is false or the body is not an envelope
        - timeout overrides the client default (long polling needs more)
        """
        client = self._ensure_client()
        kwargs: Dict[str, Any] = {"json": payload or {}}
        if timeout is not None:
            kwargs["timeout"] = timeout
        resp = await client.post(self._method_url(method), **kwargs)

        try:
            data = resp.json()
        except ValueError:
            raise TelegramAPIError(resp.status_code, resp.text) from None

        if not isinstance(data, dict) or not data.get("ok"):
            description = ""
            error_code = resp.status_code
            if isinstance(data, dict):
                description = str(data.get("description", ""))
                error_code = int(data.get("error_code", resp.status_code))
            raise TelegramAPIError(error_code, description)

        return data.get("result")

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        chat_id: int,
        text: str,
        parse_mode: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send a text message and return the sent Message object."""
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return await self._call("sendMessage", payload)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def get_file_link(self, file_id: str) -> str:
        """Resolve a file_id to a temporary download URL.

        WHY: Telegram never hands out media directly; getFile returns a
        file_path that is valid for about an hour.

        RULES:
        - Raises TelegramAPIError (e.g. "file is too big" above 20 MB)
        - Raises TelegramAPIError when the result carries no file_path
        """
        result = await self._call("getFile", {"file_id": file_id})
        file_path = result.get("file_path") if isinstance(result, dict) else None
        if not file_path:
            raise TelegramAPIError(404, "getFile returned no file_path")
        return f"{self._api_url}/file/bot{self._token}/{file_path}"

    async def download(self, url: str) -> bytes:
        """Fetch a file URL into memory.

        RULES:
        - Raises httpx.HTTPStatusError on non-2xx
        - Whole-file buffering; callers enforce the size ceiling beforehand
        """
        client = self._ensure_client()
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.content

    # ------------------------------------------------------------------
    # Webhook and polling
    # ------------------------------------------------------------------

    async def set_webhook(self, url: str, secret_token: Optional[str] = None) -> bool:
        """Register the webhook URL, optionally with a secret header value."""
        payload: Dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        result = await self._call("setWebhook", payload)
        logger.info("Webhook registered")
        return bool(result)

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        """Remove the webhook so getUpdates can be used."""
        result = await self._call(
            "deleteWebhook", {"drop_pending_updates": drop_pending_updates}
        )
        return bool(result)

    async def get_updates(
        self,
        offset: Optional[int] = None,
        timeout: int = 30,
    ) -> List[Update]:
        """Long-poll for new updates.

        RULES:
        - offset acknowledges every update with a smaller update_id
        - The HTTP timeout is the poll timeout plus a safety margin
        """
        payload: Dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        result = await self._call("getUpdates", payload, timeout=timeout + 10.0)
        return [Update.model_validate(item) for item in result or []]
