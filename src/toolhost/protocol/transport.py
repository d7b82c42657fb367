"""Server-side transports — where the server reads bytes and writes replies.

Each transport satisfies the :class:`ServerTransport` protocol, providing
``connect``, ``read_chunk``, ``send``, and ``close`` methods.  Framing is not
the transport's job: ``read_chunk`` returns raw bytes in whatever pieces the
stream delivers them, and the server feeds them to a
:class:`~toolhost.protocol.framing.ReadBuffer`.
"""

from __future__ import annotations

import asyncio
import sys
from typing import IO, Any, Protocol, runtime_checkable

from toolhost.protocol.framing import encode_message

READ_SIZE = 64 * 1024


@runtime_checkable
class ServerTransport(Protocol):
    """Abstract byte-stream transport for the server side of JSON-RPC."""

    async def connect(self) -> None: ...
    async def read_chunk(self) -> bytes: ...
    async def send(self, data: dict[str, Any]) -> None: ...
    async def close(self) -> None: ...


class StreamTransport:
    """Serves over an :class:`asyncio.StreamReader` and a binary writer.

    ``read_chunk`` returns ``b""`` at end of stream.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: IO[bytes]) -> None:
        self._reader: asyncio.StreamReader | None = reader
        self._writer = writer

    async def connect(self) -> None:
        """Nothing to do: the streams are already open."""

    async def read_chunk(self) -> bytes:
        if self._reader is None:
            msg = "Transport not connected"
            raise RuntimeError(msg)
        return await self._reader.read(READ_SIZE)

    async def send(self, data: dict[str, Any]) -> None:
        """Write one framed message and flush it."""
        self._writer.write(encode_message(data))
        self._writer.flush()

    async def close(self) -> None:
        self._reader = None


class StdioServerTransport(StreamTransport):
    """Reads process stdin through the event loop and writes to stdout."""

    def __init__(self, stdin: IO[bytes] | None = None, stdout: IO[bytes] | None = None) -> None:
        self._stdin = stdin or sys.stdin.buffer
        self._reader = None
        self._writer = stdout or sys.stdout.buffer

    async def connect(self) -> None:
        """Attach stdin to the running event loop."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, self._stdin)
        self._reader = reader
