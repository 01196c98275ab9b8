"""User-facing strings and language names, per locale.

WHY: Everything the bot says in chat — progress notices, error replies,
response headers — must be short, non-technical and in the user's language.
Keeping the strings as plain data makes them easy to review and translate
without touching pipeline logic.

HOW: MESSAGES maps locale → key → template. LANGUAGE_NAMES maps locale →
language tag → display name. get_message() formats a template with keyword
arguments; language_name() tries the full BCP-47 tag, then the bare ISO code.

RULES:
- Every locale defines exactly the same message keys
- Error templates never include provider or exception detail
- Templates use str.format() placeholders
- Unknown language tags are shown verbatim; None shows the "unknown" label
"""

from __future__ import annotations

from typing import Dict, Optional

from voice_relay.config import DEFAULT_LOCALE

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "help": (
            "Send me a voice message, an audio file, a video or a video note "
            "and I will reply with its transcription."
        ),
        "progress_audio": "Transcribing your audio...",
        "progress_video": "Transcribing your video...",
        "file_too_large": (
            "Sorry, the file is larger than the {limit_mb} MB limit. "
            "Please send a smaller file."
        ),
        "unsupported_media": (
            "Please send a voice message, audio file or video to transcribe."
        ),
        "download_failed": "Sorry, I could not download your file. Please try again.",
        "transcription_failed": (
            "Sorry, something went wrong while transcribing your message."
        ),
        "generic_error": "Sorry, something went wrong while processing your message.",
        "header_language": "*Detected language:* {language}",
        "header_confidence": "*Confidence:* {confidence}",
        "header_transcript": "*Transcription:*",
        "low_confidence": (
            "_Note: transcription confidence is low. The result may be inaccurate._"
        ),
        "no_speech": "_No speech detected._",
        "unknown_language": "Unknown",
    },
    "ru": {
        "help": (
            "Отправьте голосовое сообщение, аудиофайл, видео или видеосообщение, "
            "и я пришлю его расшифровку."
        ),
        "progress_audio": "Транскрибирую ваше аудио...",
        "progress_video": "Транскрибирую ваше видео...",
        "file_too_large": (
            "Извините, размер файла превышает ограничение в {limit_mb} МБ. "
            "Пожалуйста, отправьте файл меньшего размера."
        ),
        "unsupported_media": (
            "Пожалуйста, отправьте голосовое сообщение или видео для транскрибации."
        ),
        "download_failed": (
            "Извините, не удалось загрузить файл. Попробуйте ещё раз."
        ),
        "transcription_failed": (
            "Извините, произошла ошибка при транскрибации вашего сообщения."
        ),
        "generic_error": (
            "Извините, произошла ошибка при обработке вашего сообщения."
        ),
        "header_language": "*Определен язык:* {language}",
        "header_confidence": "*Уверенность:* {confidence}",
        "header_transcript": "*Транскрипция:*",
        "low_confidence": (
            "_Примечание: Уверенность в транскрипции низкая. "
            "Результат может быть неточным._"
        ),
        "no_speech": "_Речь не обнаружена._",
        "unknown_language": "Неизвестен",
    },
}

LANGUAGE_NAMES: Dict[str, Dict[str, str]] = {
    "en": {
        "en": "English",
        "en-us": "English",
        "en-gb": "English (UK)",
        "ru": "Russian",
        "ru-ru": "Russian",
        "uk": "Ukrainian",
        "de": "German",
        "fr": "French",
        "es": "Spanish",
        "it": "Italian",
        "pt": "Portuguese",
        "nl": "Dutch",
        "sv": "Swedish",
        "pl": "Polish",
        "tr": "Turkish",
        "ja": "Japanese",
        "ko": "Korean",
        "zh": "Chinese",
        "hi": "Hindi",
    },
    "ru": {
        "en": "Английский",
        "en-us": "Английский",
        "en-gb": "Английский (Великобритания)",
        "ru": "Русский",
        "ru-ru": "Русский",
        "uk": "Украинский",
        "de": "Немецкий",
        "fr": "Французский",
        "es": "Испанский",
        "it": "Итальянский",
        "pt": "Португальский",
        "nl": "Нидерландский",
        "sv": "Шведский",
        "pl": "Польский",
        "tr": "Турецкий",
        "ja": "Японский",
        "ko": "Корейский",
        "zh": "Китайский",
        "hi": "Хинди",
    },
}


def get_message(key: str, locale: str = DEFAULT_LOCALE, **kwargs: object) -> str:
    """Return the localized template for key, formatted with kwargs.

    Falls back to the default locale when the requested one is unknown.
    """
    table = MESSAGES.get(locale, MESSAGES[DEFAULT_LOCALE])
    template = table[key]
    return template.format(**kwargs) if kwargs else template


def language_name(code: Optional[str], locale: str = DEFAULT_LOCALE) -> str:
    """Map a detected language tag to a display name.

    RULES:
    - Lookup is case-insensitive ("en-US" and "en-us" match)
    - A regional tag with no entry falls back to its base code ("de-AT" → "de")
    - Unmapped codes are returned unchanged
    - None or empty returns the localized "unknown" label
    """
    if not code:
        return get_message("unknown_language", locale)

    names = LANGUAGE_NAMES.get(locale, LANGUAGE_NAMES[DEFAULT_LOCALE])
    normalized = code.strip().lower()
    if normalized in names:
        return names[normalized]

    base = normalized.split("-", 1)[0]
    return names.get(base, code)
