"""Pydantic response models for the HTTP surface.

WHY: The webhook endpoint answers Telegram with plain text, but the health
endpoint is read by load balancers and humans alike and benefits from a
typed schema in the /docs UI.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CacheStatusResponse(BaseModel):
    """Transcription cache counters."""

    size: int = Field(description="Live entries currently stored.", json_schema_extra={"example": 3})
    hits: int = Field(description="Lookups answered from the cache since startup.", json_schema_extra={"example": 5})
    misses: int = Field(description="Lookups that required a Deepgram call since startup.", json_schema_extra={"example": 8})


class HealthResponse(BaseModel):
    """Health check response.

    WHY: Load balancers and orchestrators need a simple endpoint
    to verify the service is alive and ready.
    """

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="Package version string.", json_schema_extra={"example": "0.1.0"})
    cache: CacheStatusResponse = Field(description="Transcription cache counters.")
