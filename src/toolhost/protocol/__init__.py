"""Protocol layer — JSON-RPC framing, envelopes, and error codes.

The dispatcher lives in :mod:`toolhost.protocol.engine`.
"""

from toolhost.protocol.errors import (
    FramingError,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ProtocolError,
    ToolNotFoundError,
)
from toolhost.protocol.framing import ReadBuffer, encode_message
from toolhost.protocol.models import JsonRpcError, JsonRpcResponse, ServerInfo, ToolListing

__all__ = [
    "FramingError",
    "InternalError",
    "InvalidParamsError",
    "InvalidRequestError",
    "JsonRpcError",
    "JsonRpcResponse",
    "MethodNotFoundError",
    "ProtocolError",
    "ReadBuffer",
    "ServerInfo",
    "ToolListing",
    "ToolNotFoundError",
    "encode_message",
]
