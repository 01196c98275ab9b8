"""Split long replies into Telegram-sized messages and send them in order.

WHY: Telegram rejects messages longer than 4096 characters, and a
half-hour voice note transcribes to far more than that. Splitting at
paragraph or word boundaries keeps each message readable on its own.

HOW: iter_chunks() repeatedly cuts the head of the remaining text at the
best boundary inside the budget: the last blank line, else the last
whitespace character, else exactly at the budget. Only the separator at a
cut is dropped, so re-inserting separators reproduces the input exactly.
send_long_message() sends the chunks one at a time, awaiting each.

RULES:
- No chunk is longer than limit
- A boundary at index 0 is never used (it would produce an empty chunk)
- Chunks are sent sequentially; whitespace-only chunks are skipped
- If Telegram cannot parse the Markdown of a chunk, it is resent as plain text
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from voice_relay.config import MESSAGE_LIMIT
from voice_relay.telegram.client import TelegramAPIError, TelegramClient

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = "\n\n"


def _last_whitespace(text: str) -> int:
    for index in range(len(text) - 1, -1, -1):
        if text[index].isspace():
            return index
    return -1


def iter_chunks(text: str, limit: int = MESSAGE_LIMIT) -> Iterator[Tuple[str, str]]:
    """Yield (chunk, dropped_separator) pairs covering text.

    The last pair always has an empty separator. Joining chunk + separator
    for every pair gives back text unchanged.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    remaining = text
    while len(remaining) > limit:
        # A break starting at index <= limit keeps the chunk within budget
        cut = remaining.rfind(PARAGRAPH_BREAK, 0, limit + len(PARAGRAPH_BREAK))
        if cut > 0:
            yield remaining[:cut], PARAGRAPH_BREAK
            remaining = remaining[cut + len(PARAGRAPH_BREAK):]
            continue

        cut = _last_whitespace(remaining[:limit + 1])
        if cut > 0:
            yield remaining[:cut], remaining[cut]
            remaining = remaining[cut + 1:]
            continue

        yield remaining[:limit], ""
        remaining = remaining[limit:]

    yield remaining, ""


def split_message(text: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    """Split text into chunks of at most limit characters."""
    return [chunk for chunk, _ in iter_chunks(text, limit)]


def _is_entity_parse_error(exc: TelegramAPIError) -> bool:
    return exc.error_code == 400 and "can't parse entities" in exc.description.lower()


async def send_long_message(
    telegram: TelegramClient,
    chat_id: int,
    text: str,
    limit: int = MESSAGE_LIMIT,
    parse_mode: Optional[str] = None,
) -> int:
    """Send text as one or more messages, in order.

    Args:
        telegram: Open TelegramClient (or anything with send_message).
        chat_id: Destination chat.
        text: Full reply text.
        limit: Character budget per message.
        parse_mode: Telegram parse mode for every chunk.

    Returns:
        Number of messages sent.
    """
    sent = 0
    for chunk in split_message(text, limit):
        if not chunk.strip():
            continue
        try:
            await telegram.send_message(chat_id, chunk, parse_mode=parse_mode)
        except TelegramAPIError as exc:
            if not (parse_mode and _is_entity_parse_error(exc)):
                raise
            logger.warning(
                "Telegram rejected %s entities in chunk %d, resending as plain text",
                parse_mode, sent + 1,
            )
            await telegram.send_message(chat_id, chunk)
        sent += 1

    logger.info("Sent reply to chat %s in %d message(s)", chat_id, sent)
    return sent
