"""Media resolution: from an inbound message to a downloadable reference.

WHY: Telegram delivers four kinds of transcribable media, each in its own
message field with slightly different metadata. The pipeline only needs the
file id, declared size, kind and MIME type, and it must reject oversized
files before spending any bandwidth on them.

HOW: resolve() inspects the message fields in a fixed priority order and
builds an immutable MediaReference. The size gate runs on the declared size
from the update itself, so it happens strictly before any network call.

RULES:
- Priority: voice, audio, video, video_note
- MIME type: the attachment's own mime_type, else the kind default
- No media and no text → UnsupportedMediaError
- declared_size > max_file_size → FileTooLargeError (before download)
- A missing file_size is recorded as 0 and passes the declared-size gate
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

from voice_relay.errors import FileTooLargeError, UnsupportedMediaError
from voice_relay.telegram.models import FileAttachment, Message


class MediaKind(str, enum.Enum):
    """Transcribable attachment kinds, in resolution priority order."""

    VOICE = "voice"
    AUDIO = "audio"
    VIDEO = "video"
    VIDEO_NOTE = "video_note"

    @property
    def is_video(self) -> bool:
        return self in (MediaKind.VIDEO, MediaKind.VIDEO_NOTE)


DEFAULT_MIME_TYPES = {
    MediaKind.VOICE: "audio/ogg",
    MediaKind.AUDIO: "audio/mpeg",
    MediaKind.VIDEO: "video/mp4",
    MediaKind.VIDEO_NOTE: "video/mp4",
}


@dataclass(frozen=True)
class MediaReference:
    """Identity and metadata of a remote file, before download.

    Attributes:
        file_id: Telegram file identifier for getFile.
        declared_size: Size in bytes from the update (0 when not reported).
        kind: Which attachment field the reference came from.
        mime_type: Content type to declare to the transcription provider.
    """

    file_id: str
    declared_size: int
    kind: MediaKind
    mime_type: str


def _first_attachment(message: Message) -> Optional[Tuple[MediaKind, FileAttachment]]:
    candidates = (
        (MediaKind.VOICE, message.voice),
        (MediaKind.AUDIO, message.audio),
        (MediaKind.VIDEO, message.video),
        (MediaKind.VIDEO_NOTE, message.video_note),
    )
    for kind, attachment in candidates:
        if attachment is not None:
            return kind, attachment
    return None


def resolve(message: Message, max_file_size: int) -> MediaReference:
    """Resolve a message's media attachment and enforce the size ceiling.

    Args:
        message: Validated inbound message.
        max_file_size: Ceiling in bytes.

    Returns:
        The MediaReference for the highest-priority attachment.

    Raises:
        UnsupportedMediaError: No media attachment (text-only messages are
            routed elsewhere by the pipeline; an empty message lands here).
        FileTooLargeError: Declared size exceeds max_file_size.
    """
    found = _first_attachment(message)
    if found is None:
        raise UnsupportedMediaError(
            "Message {} has no supported media".format(message.message_id)
        )

    kind, attachment = found
    declared_size = attachment.file_size or 0
    if declared_size > max_file_size:
        raise FileTooLargeError(declared_size, max_file_size)

    return MediaReference(
        file_id=attachment.file_id,
        declared_size=declared_size,
        kind=kind,
        mime_type=attachment.mime_type or DEFAULT_MIME_TYPES[kind],
    )
