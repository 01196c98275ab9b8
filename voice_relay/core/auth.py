"""Webhook request authentication via Telegram's secret-token header.

WHY: The webhook URL is public. Telegram can be told to send a fixed secret
in a header on every callback; checking it keeps forged updates from
triggering downloads and paid transcription calls.

HOW: The expected secret is the SHA-256 hex digest of the bot token, so it
is stable across restarts without a separate secret to manage and is passed
to setWebhook as secret_token. authenticate() is a pure predicate over the
method, the headers and that precomputed value; verify_request() raises
AuthError when it fails.

RULES:
- Only POST can authenticate; every other method returns False
- Header lookup is case-insensitive
- Comparison uses hmac.compare_digest (constant time)
- Neither the expected nor the received secret is ever logged
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Mapping

from voice_relay.config import SECRET_HEADER
from voice_relay.errors import AuthError

logger = logging.getLogger(__name__)

_WRITE_METHOD = "POST"


def expected_secret_for(bot_token: str) -> str:
    """Derive the webhook secret from the bot token (SHA-256 hex digest)."""
    return hashlib.sha256(bot_token.encode("utf-8")).hexdigest()


def _header_value(headers: Mapping[str, str], name: str) -> str | None:
    # Starlette's Headers is already case-insensitive; plain dicts are not
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def authenticate(method: str, headers: Mapping[str, str], expected_secret: str) -> bool:
    """Return True when the request is a POST carrying the expected secret.

    Args:
        method: HTTP method of the inbound request.
        headers: Request headers (any mapping; lookup is case-insensitive).
        expected_secret: Value from expected_secret_for(bot_token).

    Returns:
        True only for POST requests whose secret header matches exactly.
    """
    if method.upper() != _WRITE_METHOD:
        logger.warning("Webhook verification failed: method %s is not POST", method)
        return False

    received = _header_value(headers, SECRET_HEADER)
    if not received:
        logger.warning("Webhook verification failed: missing secret token header")
        return False

    if not hmac.compare_digest(received.encode("utf-8"), expected_secret.encode("utf-8")):
        logger.warning("Webhook verification failed: secret token mismatch")
        return False

    return True


def verify_request(method: str, headers: Mapping[str, str], expected_secret: str) -> None:
    """Raise AuthError unless authenticate() accepts the request."""
    if not authenticate(method, headers, expected_secret):
        raise AuthError("Webhook request failed secret-token verification")
