"""Error taxonomy for the relay pipeline and startup.

WHY: Each failure mode maps to a different user-facing reply (or, for
startup problems, to aborting the process). Typed exceptions let the
pipeline boundary pick the right localized message without inspecting
strings, while the server layer keeps returning 200 to Telegram.

HOW: RelayError is the base for everything the pipeline catches. Each
subclass carries a message_key that names a string in voice_relay.messages.
AuthError is raised by the webhook route and answered with 401 before the
pipeline runs. ConfigurationError is separate: it is raised at startup and
never caught per request.

RULES:
- message_key must exist in every locale table in voice_relay.messages
- Provider detail stays on the exception (for logs), never in the reply
- ConfigurationError subclasses ValueError
"""

from __future__ import annotations

from typing import Optional


class ConfigurationError(ValueError):
    """Raised at startup when required configuration is missing or invalid."""


class RelayError(Exception):
    """Base class for failures handled at the request boundary."""

    message_key = "generic_error"


class AuthError(RelayError):
    """Webhook request failed secret-token verification."""

    message_key = "generic_error"


class UnsupportedMediaError(RelayError):
    """Update carries neither text nor a recognized media attachment."""

    message_key = "unsupported_media"


class FileTooLargeError(RelayError):
    """Media exceeds the configured size ceiling.

    Attributes:
        size: Declared or downloaded size in bytes (0 when unknown).
        limit: Ceiling in bytes.
    """

    message_key = "file_too_large"

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            "File size {} bytes exceeds the limit of {} bytes".format(size, limit)
        )


class DownloadError(RelayError):
    """Media could not be fetched from Telegram."""

    message_key = "download_failed"


class ExtractionError(RelayError):
    """ffmpeg failed to demux the audio track from a video container."""

    message_key = "transcription_failed"


class MalformedUpstreamResponseError(RelayError):
    """Deepgram answered 2xx but without channels/alternatives."""

    message_key = "transcription_failed"


class UpstreamProviderError(RelayError):
    """Deepgram rejected the request or could not be reached.

    Attributes:
        status_code: HTTP status from Deepgram, None for transport failures.
        detail: Response body or transport error text (for logs only).
    """

    message_key = "transcription_failed"

    def __init__(self, status_code: Optional[int], detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        if status_code is None:
            super().__init__("Deepgram request failed: {}".format(detail))
        else:
            super().__init__("Deepgram API error {}: {}".format(status_code, detail))
