"""Voice Relay — Telegram webhook bot that turns voice and video into text.

WHY: Voice notes and video circles are hard to skim. This package receives
Telegram updates on a webhook, fetches the referenced media, sends it to the
Deepgram transcription API and replies with a readable, chunked transcript.

HOW: Four layers — clients (Telegram Bot API, Deepgram, ffmpeg), core
(auth, media resolution, cache, pipeline), formatters (paragraphs,
chunking) and the HTTP server. Each layer is independently testable.

RULES:
- The cache is a process-lifetime instance injected into the pipeline
- Pipeline failures become chat messages, never webhook errors
- Secrets come from the environment and are required at startup
"""

__version__ = "0.1.0"
