"""Deepgram request options and transcription result dataclasses.

WHY: The transcription call is fully determined by the audio bytes and a
small set of options. Making those options an immutable, canonically
serializable value lets the cache use them as part of its key, and a typed
result keeps the Deepgram response shape out of the formatter.

HOW: TranscriptionOptions maps 1:1 onto the query flags of POST /v1/listen.
TranscriptionResult is parsed from the nested Deepgram JSON by from_response,
which also performs the structural validation the pipeline relies on.

RULES:
- Both dataclasses are frozen; results may be shared between requests
- canonical() must be deterministic: same options → same string
- A response without channels[0].alternatives[0] is malformed
- confidence is clamped to [0, 1]; a missing value counts as 0.0
- detected_language lives on the channel, not the alternative
"""

from __future__ import annotations

import enum
import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from voice_relay.errors import MalformedUpstreamResponseError


class LanguageMode(str, enum.Enum):
    """How the provider chooses the spoken language.

    RULES:
    - auto-detect: detect_language=true, one language per file
    - fixed: language=<code> from TranscriptionOptions.language
    - multi: language=multi (code-switching)
    """

    AUTO_DETECT = "auto-detect"
    FIXED = "fixed"
    MULTI = "multi"


@dataclass(frozen=True)
class TranscriptionOptions:
    """Everything besides the audio that influences a transcription.

    Attributes:
        mime_type: Content-Type of the uploaded payload.
        smart_format: Punctuation, numerals and casing.
        paragraph: Paragraph segmentation in the provider output.
        model: Deepgram model name (e.g. "nova-2").
        language_mode: Language selection strategy.
        language: Language code for LanguageMode.FIXED, else None.
    """

    mime_type: str
    smart_format: bool = True
    paragraph: bool = True
    model: str = "nova-2"
    language_mode: LanguageMode = LanguageMode.AUTO_DETECT
    language: Optional[str] = None

    def canonical(self) -> str:
        """Serialize to a stable JSON string (sorted keys, enum values)."""
        data = asdict(self)
        data["language_mode"] = self.language_mode.value
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    def to_query_params(self) -> Dict[str, str]:
        """Build the /v1/listen query string for these options.

        WHY: Deepgram takes every option as a query flag; booleans are
        spelled "true"/"false".
        """
        params = {
            "model": self.model,
            "smart_format": _flag(self.smart_format),
            "paragraphs": _flag(self.paragraph),
        }
        if self.language_mode is LanguageMode.AUTO_DETECT:
            params["detect_language"] = "true"
        elif self.language_mode is LanguageMode.MULTI:
            params["language"] = "multi"
        elif self.language:
            params["language"] = self.language
        return params


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class TranscriptionResult:
    """Transcript text, overall confidence, and detected language."""

    transcript: str
    confidence: float
    detected_language: Optional[str] = None

    @classmethod
    def from_response(cls, data: Any) -> TranscriptionResult:
        """Parse and validate a Deepgram pre-recorded response.

        WHY: The pipeline treats a missing channel or alternative as a fatal
        upstream fault rather than an empty transcript.

        HOW: Walks results.channels[0].alternatives[0] with explicit type
        checks at every level.

        RULES:
        - Raises MalformedUpstreamResponseError on any structural gap
        - A missing transcript string is also malformed
        """
        results = data.get("results") if isinstance(data, dict) else None
        channels = results.get("channels") if isinstance(results, dict) else None
        if not isinstance(channels, list) or not channels:
            raise MalformedUpstreamResponseError(
                "Deepgram response has no results.channels"
            )

        channel = channels[0]
        alternatives = channel.get("alternatives") if isinstance(channel, dict) else None
        if not isinstance(alternatives, list) or not alternatives:
            raise MalformedUpstreamResponseError(
                "Deepgram response has no alternatives in channel 0"
            )

        best = alternatives[0]
        transcript = best.get("transcript") if isinstance(best, dict) else None
        if not isinstance(transcript, str):
            raise MalformedUpstreamResponseError(
                "Deepgram alternative has no transcript"
            )

        try:
            confidence = float(best.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        confidence = min(max(confidence, 0.0), 1.0)

        return cls(
            transcript=transcript,
            confidence=confidence,
            detected_language=channel.get("detected_language") or None,
        )
