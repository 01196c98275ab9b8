"""Core relay logic: authentication, media resolution, caching, pipeline.

WHY: These modules carry the relay's behavior and know nothing about HTTP
frameworks. The FastAPI server and the polling loop both drive the same
TranscriptionPipeline.

RULES:
- No module here imports from voice_relay.server or voice_relay.cli
"""
