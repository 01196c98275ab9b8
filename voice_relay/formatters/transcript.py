"""Chat reply formatter for a transcription result.

WHY: Deepgram returns one long run of text. Read on a phone, a wall of text
is hard to follow, so the reply groups sentences into short paragraphs and
prefixes them with the detected language and the confidence score, the same
layout users of the bot already know.

HOW: The transcript is split into sentences on terminal punctuation, grouped
three per paragraph, and joined with blank lines. The header lines use
Telegram's legacy Markdown bold markers; transcript text is escaped so a
stray "*" or "_" in speech cannot break the message entities.

RULES:
- Sentences end at ".", "!" or "?" (runs like "?!" stay together)
- A trailing fragment without terminal punctuation is its own sentence
- Confidence is shown as a percentage with two decimals
- The low-confidence advisory is appended when confidence < 0.6
- An empty transcript renders the "no speech detected" note, no advisory
- Output parse mode: PARSE_MODE ("Markdown")
"""

from __future__ import annotations

import re
from typing import List

from voice_relay.api.models import TranscriptionResult
from voice_relay.config import (
    DEFAULT_LOCALE,
    LOW_CONFIDENCE_THRESHOLD,
    SENTENCES_PER_PARAGRAPH,
)
from voice_relay.messages import get_message, language_name

PARSE_MODE = "Markdown"

_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")

# Telegram legacy Markdown reserves these four outside of entities
_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")


def split_sentences(text: str) -> List[str]:
    """Split text into sentences, keeping the terminal punctuation."""
    sentences = [match.group(0).strip() for match in _SENTENCE_RE.finditer(text)]
    return [s for s in sentences if s]


def group_paragraphs(text: str, sentences_per_paragraph: int = SENTENCES_PER_PARAGRAPH) -> str:
    """Group sentences into paragraphs separated by a blank line.

    Args:
        text: Transcript text.
        sentences_per_paragraph: Sentences per paragraph (must be >= 1).

    Returns:
        Paragraph text; empty when text holds no sentences.
    """
    if sentences_per_paragraph < 1:
        raise ValueError("sentences_per_paragraph must be at least 1")

    sentences = split_sentences(text)
    paragraphs = [
        " ".join(sentences[i:i + sentences_per_paragraph])
        for i in range(0, len(sentences), sentences_per_paragraph)
    ]
    return "\n\n".join(paragraphs)


def escape_markdown(text: str) -> str:
    """Backslash-escape legacy Markdown control characters."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def format_confidence(confidence: float) -> str:
    return "{:.2f}%".format(confidence * 100)


def is_low_confidence(result: TranscriptionResult) -> bool:
    return result.confidence < LOW_CONFIDENCE_THRESHOLD


def format_result(result: TranscriptionResult, locale: str = DEFAULT_LOCALE) -> str:
    """Render the full chat reply for a transcription.

    HOW: Header lines (language, confidence, transcript label), then the
    paragraphs, then the advisory when applicable, all separated by blank
    lines so the chunker can prefer those boundaries.
    """
    body = group_paragraphs(result.transcript)

    parts = [
        get_message("header_language", locale, language=language_name(result.detected_language, locale)),
        get_message("header_confidence", locale, confidence=format_confidence(result.confidence)),
        get_message("header_transcript", locale),
    ]

    if not body:
        parts.append(get_message("no_speech", locale))
        return "\n\n".join(parts)

    parts.append(escape_markdown(body))
    if is_low_confidence(result):
        parts.append(get_message("low_confidence", locale))
    return "\n\n".join(parts)
