"""Reply formatting: transcript layout and message chunking.

WHY: What the user reads is decoupled from how it was produced. The
pipeline hands a TranscriptionResult to format_result() and the rendered
text to send_long_message(); neither knows about Deepgram or the cache.

RULES:
- Formatting functions are pure; only send_long_message does I/O
"""

from voice_relay.formatters.chunking import iter_chunks, send_long_message, split_message
from voice_relay.formatters.transcript import (
    PARSE_MODE,
    escape_markdown,
    format_result,
    group_paragraphs,
)

__all__ = [
    "PARSE_MODE",
    "escape_markdown",
    "format_result",
    "group_paragraphs",
    "iter_chunks",
    "send_long_message",
    "split_message",
]
