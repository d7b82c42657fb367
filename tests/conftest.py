"""Shared fixtures for toolhost tests."""

from __future__ import annotations

import io
from typing import Any

import pytest

from toolhost.protocol.models import ServerInfo
from toolhost.server import ToolServer


class FakeTransport:
    """In-memory :class:`ServerTransport` that replays chunks and records replies."""

    def __init__(self, chunks: list[bytes] | None = None) -> None:
        self.chunks = list(chunks or [])
        self.sent: list[dict[str, Any]] = []
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def read_chunk(self) -> bytes:
        if not self.chunks:
            return b""
        return self.chunks.pop(0)

    async def send(self, data: dict[str, Any]) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def server(log_stream: io.StringIO):
    srv = ToolServer(ServerInfo(name="test-server", version="1.0.0"), log_stream=log_stream)
    yield srv
    srv.close()


@pytest.fixture
def transport_factory():
    return FakeTransport
