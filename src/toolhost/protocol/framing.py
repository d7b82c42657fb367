"""ReadBuffer — newline-delimited JSON framing over a byte stream.

Chunks arrive in arbitrary sizes.  Bytes accumulate until a newline is seen;
only complete lines are decoded and parsed, so partial messages (and UTF-8
sequences split across chunks) survive any number of ``append`` calls.

Usage::

    buffer = ReadBuffer()
    buffer.append(chunk)
    while (message := buffer.read_message()) is not None:
        handle(message)
"""

from __future__ import annotations

import json
from typing import Any

from toolhost.protocol.errors import FramingError


class ReadBuffer:
    """Accumulates raw stream bytes and yields parsed JSON messages."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def append(self, chunk: bytes | str) -> None:
        """Add a chunk of raw stream data to the buffer."""
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._buffer.extend(chunk)

    def read_message(self) -> Any | None:
        """Remove and return the next complete message, or ``None``.

        Blank lines are skipped.  A line that is not valid JSON is consumed
        and reported as :class:`FramingError`; the following call resumes
        with the next line.
        """
        while True:
            index = self._buffer.find(b"\n")
            if index == -1:
                return None

            raw = bytes(self._buffer[:index])
            del self._buffer[: index + 1]

            line = raw.decode("utf-8", errors="replace").rstrip("\r")
            if not line.strip():
                continue

            try:
                message = json.loads(line)
            except json.JSONDecodeError as exc:
                raise FramingError(str(exc), line) from exc
            if message is None:
                raise FramingError("message is null", line)
            return message

    def clear(self) -> None:
        """Discard everything buffered so far."""
        self._buffer.clear()


def encode_message(data: dict[str, Any]) -> bytes:
    """Serialize one message as a compact JSON line.

    Raises:
        ValueError: *data* contains NaN or infinity, which JSON cannot carry.
    """
    return (json.dumps(data, separators=(",", ":"), ensure_ascii=False, allow_nan=False) + "\n").encode("utf-8")
