"""Long-polling update loop for running the relay without a public URL.

WHY: During development there is usually no HTTPS endpoint Telegram can
reach. getUpdates lets the same pipeline run from a laptop.

HOW: Calls getUpdates with the offset of the last seen update plus one,
which acknowledges everything before it, and feeds each update to the
pipeline in arrival order. Errors from getUpdates are logged and retried
after a short pause; pipeline errors never reach this loop because
handle_message() answers them in chat.

RULES:
- The webhook must be deleted first (Telegram refuses getUpdates otherwise)
- Updates are processed sequentially, one at a time
- max_batches=None polls until cancelled (tests pass a small number)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from voice_relay.core.pipeline import TranscriptionPipeline
from voice_relay.telegram.client import TelegramAPIError

logger = logging.getLogger(__name__)

POLL_TIMEOUT_S = 30
RETRY_DELAY_S = 5.0


async def run_polling(
    telegram: Any,
    pipeline: TranscriptionPipeline,
    poll_timeout: int = POLL_TIMEOUT_S,
    retry_delay: float = RETRY_DELAY_S,
    max_batches: Optional[int] = None,
) -> int:
    """Poll Telegram for updates and process them until cancelled.

    Returns:
        Number of updates processed (only reached when max_batches is set).
    """
    offset: Optional[int] = None
    processed = 0
    batches = 0

    logger.info("Polling Telegram for updates")
    while max_batches is None or batches < max_batches:
        batches += 1
        try:
            updates = await telegram.get_updates(offset=offset, timeout=poll_timeout)
        except (TelegramAPIError, httpx.HTTPError) as exc:
            logger.warning("getUpdates failed (%s), retrying in %.0fs", exc, retry_delay)
            await asyncio.sleep(retry_delay)
            continue

        for update in updates:
            if update.update_id is not None:
                offset = update.update_id + 1
            await pipeline.process_update(update)
            processed += 1

    return processed
