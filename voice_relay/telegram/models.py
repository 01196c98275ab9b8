"""Pydantic models for the subset of the Telegram Update payload we consume.

WHY: Webhook bodies arrive as untyped JSON. Validating them into models at
the edge means the resolver and pipeline work with attributes instead of
nested dict lookups, and a body that is not an update at all is rejected
before any pipeline logic runs.

HOW: Only the fields the relay reads are declared; pydantic ignores the
rest. Voice, audio, video and video_note share one attachment model since
the relay needs the same metadata from each.

RULES:
- Unknown fields are ignored (Telegram adds fields over time)
- file_size and mime_type are optional, as in the Bot API
- Python 3.9+ compatible (Optional from typing, no PEP 604 unions)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Chat(BaseModel):
    """Chat the message was sent in."""

    id: int = Field(description="Unique chat identifier.")
    type: Optional[str] = Field(default=None, description="private, group, supergroup or channel.")


class FileAttachment(BaseModel):
    """Common metadata of voice, audio, video and video_note attachments."""

    file_id: str = Field(description="Identifier used with getFile.")
    file_unique_id: Optional[str] = Field(default=None, description="Stable file identifier.")
    file_size: Optional[int] = Field(default=None, description="Declared size in bytes.")
    mime_type: Optional[str] = Field(default=None, description="MIME type as reported by the sender.")
    duration: Optional[int] = Field(default=None, description="Duration in seconds.")


class Message(BaseModel):
    """An inbound chat message; at most one content field is populated."""

    message_id: Optional[int] = None
    chat: Chat
    text: Optional[str] = None
    caption: Optional[str] = None
    voice: Optional[FileAttachment] = None
    audio: Optional[FileAttachment] = None
    video: Optional[FileAttachment] = None
    video_note: Optional[FileAttachment] = None

    @property
    def has_media(self) -> bool:
        return any(
            attachment is not None
            for attachment in (self.voice, self.audio, self.video, self.video_note)
        )


class Update(BaseModel):
    """Top-level Telegram update. Only plain messages are handled."""

    update_id: Optional[int] = None
    message: Optional[Message] = None
