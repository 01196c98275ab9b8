"""Deepgram API client package — async HTTP interface to the transcription service.

WHY: The pipeline needs to send buffered media to Deepgram and get back a
validated transcript. This package hides the HTTP details behind one client
class and two dataclasses.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. TranscriptionOptions
builds the query flags; TranscriptionResult parses and validates the reply.

RULES:
- All Deepgram HTTP calls go through DeepgramClient
- Authentication is via "Token" header from config
"""

from voice_relay.api.client import DeepgramClient
from voice_relay.api.models import LanguageMode, TranscriptionOptions, TranscriptionResult

__all__ = ["DeepgramClient", "LanguageMode", "TranscriptionOptions", "TranscriptionResult"]
