"""Server-push frame codec.

Frames are ``data: <json>\\n\\n`` records on a text stream. Lines that do not
start with ``data:`` (comments, heartbeats) carry no payload. Decoding is split
into a pure ``extract_frames`` step and a transport-free ``FrameDecoder`` that
holds partial bytes and text between network reads.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger(__name__)

FRAME_DELIMITER = "\n\n"
DATA_MARKER = "data:"

# Comment-only frame; used as stream preamble and heartbeat
COMMENT_FRAME = ":\n\n"

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"
EVENT_STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
}


class ProtocolFrameError(Exception):
    """Raised when a decoded frame does not have the expected shape."""

    pass


def encode_frame(payload: Any) -> str:
    """Serialize a payload as one data frame."""
    return f"{DATA_MARKER} {json.dumps(payload, ensure_ascii=False)}{FRAME_DELIMITER}"


def extract_frames(buffer: str) -> tuple[list[str], str]:
    """Split complete events off the front of a text buffer.

    Args:
        buffer: Accumulated stream text

    Returns:
        Tuple of (complete event texts, unterminated remainder)
    """
    events = []
    remainder = buffer
    while True:
        idx = remainder.find(FRAME_DELIMITER)
        if idx < 0:
            break
        events.append(remainder[:idx])
        remainder = remainder[idx + len(FRAME_DELIMITER):]
    return events, remainder


def iter_data_payloads(event_text: str) -> Iterator[Any]:
    """Yield the JSON payload of every ``data:`` line in one event."""
    for line in event_text.split("\n"):
        trimmed = line.strip()
        if not trimmed.startswith(DATA_MARKER):
            continue
        raw = trimmed[len(DATA_MARKER):].strip()
        if not raw:
            continue
        try:
            yield json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Skipping non-JSON data line: {raw[:80]}")
            continue


class FrameDecoder:
    """Incremental decoder from raw stream bytes to frame payloads."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self.pending_text = ""

    @property
    def pending_bytes(self) -> bytes:
        """Bytes of an incomplete multi-byte character held back."""
        return self._decoder.getstate()[0]

    def feed(self, chunk: bytes) -> list[Any]:
        """Consume one network read and return the payloads it completed."""
        text = self.pending_text + self._decoder.decode(chunk)
        # A trailing "\r" stays buffered until its "\n" arrives
        text = text.replace("\r\n", "\n")
        events, self.pending_text = extract_frames(text)

        payloads = []
        for event_text in events:
            payloads.extend(iter_data_payloads(event_text))
        return payloads

    def feed_text(self, text: str) -> list[Any]:
        """Consume already-decoded text."""
        return self.feed(text.encode("utf-8"))
