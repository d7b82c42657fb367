"""Protocol models — JSON-RPC 2.0 envelopes and server identity.

Implements the subset of the Model Context Protocol a tool server answers:
``initialize``, ``ping``, ``tools/list`` and ``tools/call``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

JSONRPC_VERSION = "2.0"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"

# ---------------------------------------------------------------------------
# Server identity
# ---------------------------------------------------------------------------


class ServerInfo(BaseModel):
    """Name and version echoed back on ``initialize``."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = "0.0.0"


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message.

    ``id`` may legitimately be ``None``: a request whose id is an explicit
    ``null`` is still answered.
    """

    jsonrpc: str = JSONRPC_VERSION
    id: Any = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, id: Any, result: dict[str, Any]) -> JsonRpcResponse:
        return cls(id=id, result=result)

    @classmethod
    def failure(cls, id: Any, code: int, message: str) -> JsonRpcResponse:
        return cls(id=id, error=JsonRpcError(code=code, message=message))

    def to_wire(self) -> dict[str, Any]:
        """Serialize with exactly one of ``result`` / ``error`` present."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump()
        else:
            data["result"] = self.result if self.result is not None else {}
        return data


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class ToolListing(BaseModel):
    """A tool as advertised by ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
