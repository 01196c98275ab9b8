"""Transcription pipeline: one inbound message in, one or more replies out.

WHY: Every media message walks the same path: size check, progress notice,
download, optional audio extraction, cached transcription, formatting and a
chunked reply. Failures anywhere along that path must end in a short, polite
chat reply instead of silence, while Telegram still sees its webhook call
acknowledged.

HOW: TranscriptionPipeline holds the collaborators (Telegram client,
transcriber, cache, optional extractor) that the server or the polling
loop injects at startup. handle_message() runs the steps as sequential
awaits inside a single error boundary that maps each RelayError to its
localized message.

RULES:
- Text-only messages get the help reply; no resolver, no download
- The size gate runs before any network call
- The progress notice is sent before the download starts
- Telegram's "file is too big" rejection becomes FileTooLargeError
- Only the Deepgram call sits behind the cache; downloads always happen
- Provider detail is logged, never sent to the chat
- handle_message() never raises
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

import httpx

from voice_relay.api.models import LanguageMode, TranscriptionOptions, TranscriptionResult
from voice_relay.config import Settings
from voice_relay.core.cache import TranscriptionCache
from voice_relay.core.extraction import AudioExtractor
from voice_relay.core.media import MediaReference, resolve
from voice_relay.errors import (
    DownloadError,
    FileTooLargeError,
    RelayError,
    UnsupportedMediaError,
)
from voice_relay.formatters import PARSE_MODE, format_result, send_long_message
from voice_relay.messages import get_message
from voice_relay.telegram.client import TelegramAPIError
from voice_relay.telegram.models import Message, Update

logger = logging.getLogger(__name__)

_TOO_BIG_MARKER = "file is too big"


class TranscriptionPipeline:
    """Process Telegram messages into transcription replies.

    Args:
        telegram: Open TelegramClient.
        transcriber: Object with async transcribe_file(audio, options)
            (DeepgramClient in production).
        cache: Shared TranscriptionCache.
        settings: Runtime Settings.
        extractor: Optional AudioExtractor for video containers.
    """

    def __init__(
        self,
        telegram: Any,
        transcriber: Any,
        cache: TranscriptionCache,
        settings: Settings,
        extractor: Optional[AudioExtractor] = None,
    ) -> None:
        self._telegram = telegram
        self._transcriber = transcriber
        self._cache = cache
        self._settings = settings
        self._extractor = extractor

    @property
    def cache(self) -> TranscriptionCache:
        return self._cache

    async def process_update(self, update: Update) -> None:
        """Handle one update; updates without a message are ignored."""
        if update.message is None:
            logger.debug("Ignoring update %s without a message", update.update_id)
            return
        await self.handle_message(update.message)

    async def handle_message(self, message: Message) -> None:
        """Run the pipeline for one message behind the error boundary."""
        chat_id = message.chat.id
        try:
            await self._run(message)
        except FileTooLargeError as exc:
            logger.warning("Chat %s: %s", chat_id, exc)
            await self._reply_error(
                chat_id, exc.message_key, limit_mb=self._settings.max_file_size_mb
            )
        except RelayError as exc:
            logger.warning(
                "Chat %s: %s failed: %s", chat_id, type(exc).__name__, exc
            )
            await self._reply_error(chat_id, exc.message_key)
        except Exception:
            logger.exception("Chat %s: unexpected error while processing message", chat_id)
            await self._reply_error(chat_id, "generic_error")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run(self, message: Message) -> None:
        chat_id = message.chat.id
        locale = self._settings.locale

        if not message.has_media:
            if message.text is not None:
                await self._telegram.send_message(chat_id, get_message("help", locale))
                return
            raise UnsupportedMediaError(
                "Message {} has neither text nor media".format(message.message_id)
            )

        media = resolve(message, self._settings.max_file_size_bytes)
        logger.info(
            "Chat %s: %s message, file_id=%s, declared %d bytes",
            chat_id, media.kind.value, media.file_id, media.declared_size,
        )

        progress_key = "progress_video" if media.kind.is_video else "progress_audio"
        await self._telegram.send_message(chat_id, get_message(progress_key, locale))

        payload = await self._download(media)
        payload, mime_type = await self._prepare(media, payload)

        options = TranscriptionOptions(
            mime_type=mime_type,
            smart_format=True,
            paragraph=True,
            model=self._settings.deepgram_model,
            language_mode=LanguageMode.AUTO_DETECT,
        )

        async def compute() -> TranscriptionResult:
            return await self._transcriber.transcribe_file(payload, options)

        result = await self._cache.get_or_compute(payload, options, compute)

        reply = format_result(result, locale)
        await send_long_message(
            self._telegram,
            chat_id,
            reply,
            limit=self._settings.message_limit,
            parse_mode=PARSE_MODE,
        )

    async def _download(self, media: MediaReference) -> bytes:
        """Resolve the file link and fetch the bytes.

        RULES:
        - TelegramAPIError "file is too big" → FileTooLargeError
        - Any other Telegram or transport failure → DownloadError
        - A payload over the ceiling (undeclared size) → FileTooLargeError
        """
        limit = self._settings.max_file_size_bytes
        try:
            url = await self._telegram.get_file_link(media.file_id)
            data = await self._telegram.download(url)
        except TelegramAPIError as exc:
            if _TOO_BIG_MARKER in exc.description.lower():
                raise FileTooLargeError(media.declared_size, limit) from exc
            raise DownloadError(str(exc)) from exc
        except httpx.HTTPError as exc:
            raise DownloadError(
                "Download of {} failed: {}".format(media.file_id, type(exc).__name__)
            ) from exc

        if len(data) > limit:
            raise FileTooLargeError(len(data), limit)
        return data

    async def _prepare(self, media: MediaReference, payload: bytes) -> Tuple[bytes, str]:
        """Demux video containers when an extractor is configured."""
        if media.kind.is_video and self._extractor is not None:
            audio = await self._extractor.extract(payload)
            return audio, self._extractor.mime_type
        return payload, media.mime_type

    async def _reply_error(self, chat_id: int, key: str, **kwargs: object) -> None:
        text = get_message(key, self._settings.locale, **kwargs)
        try:
            await self._telegram.send_message(chat_id, text)
        except Exception:
            logger.exception("Chat %s: could not deliver error reply", chat_id)
