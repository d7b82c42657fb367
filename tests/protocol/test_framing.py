"""Tests for the newline-delimited JSON ReadBuffer."""

import json

import pytest

from toolhost.protocol.errors import FramingError
from toolhost.protocol.framing import ReadBuffer, encode_message

MESSAGES = [
    {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"clientInfo": {"name": "t"}}},
    {"jsonrpc": "2.0", "method": "notifications/initialized"},
    {"jsonrpc": "2.0", "id": "abc", "method": "tools/call", "params": {"name": "echo", "arguments": {"text": "héllo ✓"}}},
    {"jsonrpc": "2.0", "id": None, "method": "tools/list"},
]


def _drain(buffer: ReadBuffer) -> list[object]:
    out = []
    while (message := buffer.read_message()) is not None:
        out.append(message)
    return out


def _stream() -> bytes:
    return b"".join(encode_message(m) for m in MESSAGES)


class TestReadBuffer:
    def test_empty_buffer_has_no_message(self) -> None:
        assert ReadBuffer().read_message() is None

    def test_single_message(self) -> None:
        buffer = ReadBuffer()
        buffer.append(b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n')
        assert buffer.read_message() == {"jsonrpc": "2.0", "id": 1, "method": "ping"}
        assert buffer.read_message() is None

    def test_partial_message_waits_for_newline(self) -> None:
        buffer = ReadBuffer()
        buffer.append(b'{"jsonrpc":"2.0",')
        assert buffer.read_message() is None
        buffer.append(b'"id":1,"method":"ping"}')
        assert buffer.read_message() is None
        buffer.append(b"\n")
        assert buffer.read_message() == {"jsonrpc": "2.0", "id": 1, "method": "ping"}

    def test_accepts_text_chunks(self) -> None:
        buffer = ReadBuffer()
        buffer.append('{"a": 1}\n')
        assert buffer.read_message() == {"a": 1}

    def test_skips_blank_lines_and_strips_cr(self) -> None:
        buffer = ReadBuffer()
        buffer.append(b'\n\r\n   \n{"a": 1}\r\n')
        assert _drain(buffer) == [{"a": 1}]

    def test_multiple_messages_in_one_chunk(self) -> None:
        buffer = ReadBuffer()
        buffer.append(_stream())
        assert _drain(buffer) == MESSAGES

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64])
    def test_chunk_boundary_independence(self, size: int) -> None:
        data = _stream()
        buffer = ReadBuffer()
        received: list[object] = []
        for start in range(0, len(data), size):
            buffer.append(data[start : start + size])
            received.extend(_drain(buffer))
        assert received == MESSAGES
        assert len(buffer) == 0

    def test_multibyte_character_split_across_chunks(self) -> None:
        data = encode_message({"text": "✓"})
        split = data.index("✓".encode()) + 1
        buffer = ReadBuffer()
        buffer.append(data[:split])
        assert buffer.read_message() is None
        buffer.append(data[split:])
        assert buffer.read_message() == {"text": "✓"}

    def test_malformed_line_raises_and_is_consumed(self) -> None:
        buffer = ReadBuffer()
        buffer.append(b'{not json}\n{"a": 1}\n')
        with pytest.raises(FramingError) as exc_info:
            buffer.read_message()
        assert exc_info.value.line == "{not json}"
        assert buffer.read_message() == {"a": 1}

    def test_null_line_is_a_framing_error(self) -> None:
        buffer = ReadBuffer()
        buffer.append(b"null\n")
        with pytest.raises(FramingError, match="null"):
            buffer.read_message()

    def test_clear_discards_partial_data(self) -> None:
        buffer = ReadBuffer()
        buffer.append(b'{"a":')
        buffer.clear()
        buffer.append(b'{"b": 2}\n')
        assert buffer.read_message() == {"b": 2}


class TestEncodeMessage:
    def test_compact_newline_terminated(self) -> None:
        encoded = encode_message({"jsonrpc": "2.0", "id": 1, "result": {}})
        assert encoded.endswith(b"\n")
        assert encoded.count(b"\n") == 1
        assert b" " not in encoded
        assert json.loads(encoded) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_rejects_non_json_floats(self, value: float) -> None:
        with pytest.raises(ValueError):
            encode_message({"jsonrpc": "2.0", "id": 1, "result": {"value": value}})
