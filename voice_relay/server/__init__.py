"""HTTP server: the Telegram webhook endpoint and health check (FastAPI)."""

from voice_relay.server.app import create_app, run_api

__all__ = ["create_app", "run_api"]
