"""Telegram Bot API integration — typed update models and an async client.

WHY: The relay talks to Telegram in two directions: it receives updates
(webhook or long polling) and calls the Bot API to fetch files and reply.

HOW: models.py validates inbound JSON with pydantic; client.py wraps the
Bot API with httpx.AsyncClient.

RULES:
- All Bot API HTTP calls go through TelegramClient
- The bot token never appears in logs
"""

from voice_relay.telegram.client import TelegramAPIError, TelegramClient
from voice_relay.telegram.models import Chat, FileAttachment, Message, Update

__all__ = [
    "Chat",
    "FileAttachment",
    "Message",
    "TelegramAPIError",
    "TelegramClient",
    "Update",
]
