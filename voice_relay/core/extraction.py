"""Optional audio-track extraction for video containers.

WHY: Deepgram accepts video containers directly, but uploading a 20 MB video
to transcribe its soundtrack wastes bandwidth. With EXTRACT_AUDIO enabled,
the relay demuxes the audio to a small mono Opus stream first.

HOW: The video bytes are written to a temporary file (MP4 needs a seekable
input because the moov atom is often at the end), then ffmpeg runs as an
asyncio subprocess and writes Ogg/Opus to stdout. Nothing touches the event
loop thread for longer than the temp file write.

RULES:
- Output is mono, 16 kHz, Opus in Ogg (EXTRACTED_MIME_TYPE)
- Non-zero exit or empty output raises ExtractionError with ffmpeg's stderr tail
- The temporary directory is always removed
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from typing import List, Optional

from voice_relay.errors import ExtractionError

logger = logging.getLogger(__name__)

EXTRACTED_MIME_TYPE = "audio/ogg"

_STDERR_TAIL_CHARS = 500


def ffmpeg_available(binary: str = "ffmpeg") -> bool:
    """Return True when the ffmpeg binary is on PATH."""
    return shutil.which(binary) is not None


class AudioExtractor:
    """Demux the audio track from a video payload with ffmpeg.

    RULES:
    - One instance per process; extract() is safe to call concurrently
    - binary may be an absolute path (tests pass a stand-in executable)
    """

    mime_type = EXTRACTED_MIME_TYPE

    def __init__(self, binary: str = "ffmpeg", sample_rate: int = 16000) -> None:
        self._binary = binary
        self._sample_rate = sample_rate

    def build_command(self, input_path: str) -> List[str]:
        return [
            self._binary,
            "-hide_banner",
            "-loglevel", "error",
            "-i", input_path,
            "-vn",
            "-ac", "1",
            "-ar", str(self._sample_rate),
            "-c:a", "libopus",
            "-f", "ogg",
            "pipe:1",
        ]

    async def extract(self, data: bytes, suffix: str = ".mp4") -> bytes:
        """Return the Ogg/Opus audio track of a video payload.

        Args:
            data: Raw video bytes as downloaded from Telegram.
            suffix: File extension hint for ffmpeg's demuxer probe.

        Raises:
            ExtractionError: ffmpeg is missing, fails, or produces no audio.
        """
        with tempfile.TemporaryDirectory(prefix="voice_relay_") as tmp_dir:
            input_path = os.path.join(tmp_dir, "input" + suffix)
            with open(input_path, "wb") as fh:
                fh.write(data)

            cmd = self.build_command(input_path)
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                raise ExtractionError(
                    "Could not start {}: {}".format(self._binary, exc)
                ) from exc

            stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            raise ExtractionError(
                "ffmpeg exited with code {}: {}".format(
                    proc.returncode, _stderr_tail(stderr)
                )
            )
        if not stdout:
            raise ExtractionError("ffmpeg produced no audio output")

        logger.info(
            "Extracted audio track: %d bytes video -> %d bytes audio",
            len(data), len(stdout),
        )
        return stdout


def _stderr_tail(stderr: Optional[bytes]) -> str:
    if not stderr:
        return "(no stderr)"
    text = stderr.decode("utf-8", errors="replace").strip()
    return text[-_STDERR_TAIL_CHARS:]
