"""Error types for the protocol layer.

Every :class:`ProtocolError` carries the JSON-RPC error code it is reported
with, so the engine can turn any of them into an error response directly.
"""

from __future__ import annotations

from toolhost.errors import ToolhostError

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class FramingError(ToolhostError):
    """A line on the stream was not a parseable JSON message."""

    def __init__(self, detail: str, line: str = "") -> None:
        self.detail = detail
        self.line = line
        super().__init__(f"Parse error: {detail}")


class ProtocolError(ToolhostError):
    """Base error for failures reported back to the client."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, *, code: int | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)


class InvalidRequestError(ProtocolError):
    code = INVALID_REQUEST


class MethodNotFoundError(ProtocolError):
    code = METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class InvalidParamsError(ProtocolError):
    code = INVALID_PARAMS


class InternalError(ProtocolError):
    code = INTERNAL_ERROR


class ToolNotFoundError(ProtocolError):
    """Requested tool is not in the registry.

    ``suggestions`` holds the closest registered names, nearest first.
    """

    code = METHOD_NOT_FOUND

    def __init__(
        self,
        name: str,
        suggestions: list[str] | None = None,
        *,
        code: int | None = None,
        normalized: str | None = None,
    ) -> None:
        self.name = name
        self.suggestions = suggestions or []
        message = f"Tool not found: {name}"
        if normalized is not None and normalized != name:
            message += f" ({normalized})"
        if self.suggestions:
            message += f". Did you mean one of these: {', '.join(self.suggestions)}?"
        super().__init__(message, code=code)
