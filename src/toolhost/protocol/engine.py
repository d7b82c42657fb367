"""ProtocolEngine — JSON-RPC method dispatch for a tool server.

Each message is handled independently: the engine keeps no per-session state
beyond the registry it was given.  Two entry points share one dispatcher:

* :meth:`ProtocolEngine.handle_message` — the newline-delimited stream
  transport.  Messages that are not JSON-RPC 2.0 objects are ignored.
* :meth:`ProtocolEngine.handle_request` — request/response transports (e.g.
  HTTP), which additionally answer ``ping``.

Both return the response as a dict, or ``None`` when nothing must be sent
(notifications and messages without an ``id`` key).
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Callable

from toolhost.protocol.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ProtocolError,
    ToolNotFoundError,
)
from toolhost.protocol.models import (
    DEFAULT_PROTOCOL_VERSION,
    JSONRPC_VERSION,
    JsonRpcResponse,
    ServerInfo,
)
from toolhost.protocol.validation import describe_missing, find_missing_required
from toolhost.registry.models import Handler, normalize_tool_name
from toolhost.runtime.errors import HandlerTimeoutError
from toolhost.runtime.results import call_handler, normalize_result
from toolhost.utils.telemetry import (
    ATTR_ERROR_CODE,
    ATTR_HANDLER_KIND,
    ATTR_RPC_METHOD,
    ATTR_SERVER_NAME,
    ATTR_TOOL_NAME,
    ATTR_TOOL_TIMEOUT,
    get_tracer,
)

if TYPE_CHECKING:
    from toolhost.registry.registry import ToolRegistry

_tracer = get_tracer(__name__)

DefaultHandlerFactory = Callable[[str], Handler | None]

NOTIFICATION_PREFIX = "notifications/"
MAX_SUGGESTIONS = 3


class ProtocolEngine:
    """Dispatches ``initialize``, ``ping``, ``tools/list`` and ``tools/call``.

    Usage::

        engine = ProtocolEngine(ServerInfo(name="tools", version="1.0.0"), registry)
        response = await engine.handle_message(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/list"}
        )
    """

    def __init__(
        self,
        server_info: ServerInfo,
        registry: ToolRegistry,
        *,
        default_handler: DefaultHandlerFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.server_info = server_info
        self.registry = registry
        self._default_handler = default_handler
        self._logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Handle one message from the stream transport."""
        if not isinstance(message, dict):
            self._logger.debug("Invalid message: not an object")
            return None
        if message.get("jsonrpc") != JSONRPC_VERSION:
            self._logger.debug("Invalid message: missing or invalid jsonrpc field")
            return None
        return await self._handle(message, request_transport=False)

    async def handle_request(self, request: Any) -> dict[str, Any] | None:
        """Handle one request from a request/response transport."""
        if not isinstance(request, dict):
            return JsonRpcResponse.failure(None, InvalidRequestError.code, "Invalid Request").to_wire()
        return await self._handle(request, request_transport=True)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _handle(self, message: dict[str, Any], *, request_transport: bool) -> dict[str, Any] | None:
        # Only a missing "id" key marks a notification; an explicit null id
        # is still a request.
        expects_reply = "id" in message
        request_id = message.get("id")
        method = message.get("method")

        if not isinstance(method, str) or not method:
            return self._reply_error(
                expects_reply,
                request_id,
                InvalidRequestError("Invalid Request: method must be a string"),
            )

        with _tracer.start_as_current_span("toolhost.rpc") as span:
            span.set_attribute(ATTR_SERVER_NAME, self.server_info.name)
            span.set_attribute(ATTR_RPC_METHOD, method)
            try:
                result = await self._dispatch(method, message.get("params"), request_transport=request_transport)
            except ProtocolError as exc:
                span.set_attribute(ATTR_ERROR_CODE, exc.code)
                return self._reply_error(expects_reply, request_id, exc)
            except Exception as exc:
                span.set_attribute(ATTR_ERROR_CODE, INTERNAL_ERROR)
                self._logger.debug("Unhandled error in %s: %s", method, exc, exc_info=True)
                return self._reply_error(expects_reply, request_id, InternalError(str(exc) or "Internal error"))

        if result is None:
            return None
        if not expects_reply:
            self._logger.debug("Processed notification %s, no response sent", method)
            return None
        return JsonRpcResponse.success(request_id, result).to_wire()

    async def _dispatch(
        self,
        method: str,
        params: Any,
        *,
        request_transport: bool,
    ) -> dict[str, Any] | None:
        if params is not None and not isinstance(params, dict):
            raise InvalidParamsError("Invalid params: params must be an object")
        params = params or {}

        if method == "initialize":
            return self._initialize(params, request_transport=request_transport)
        if method == "ping" and request_transport:
            return {}
        if method == "tools/list":
            return {"tools": self.registry.listing()}
        if method == "tools/call":
            return await self._call_tool(params, request_transport=request_transport)
        if method.startswith(NOTIFICATION_PREFIX):
            self._logger.debug("ignore %s", method)
            return None
        raise MethodNotFoundError(method)

    def _initialize(self, params: dict[str, Any], *, request_transport: bool) -> dict[str, Any]:
        client_info = params.get("clientInfo") or {}
        if not isinstance(client_info, dict):
            raise InvalidParamsError("Invalid params: 'clientInfo' must be an object")
        self._logger.debug("client info: %s", client_info)

        protocol_version = params.get("protocolVersion")
        if protocol_version is not None and not isinstance(protocol_version, str):
            raise InvalidParamsError("Invalid params: 'protocolVersion' must be a string")
        if request_transport and not protocol_version:
            protocol_version = DEFAULT_PROTOCOL_VERSION

        result: dict[str, Any] = {"serverInfo": self.server_info.model_dump()}
        if protocol_version:
            result["protocolVersion"] = protocol_version
        result["capabilities"] = {"tools": {}}
        return result

    async def _call_tool(self, params: dict[str, Any], *, request_transport: bool) -> dict[str, Any]:
        name = params.get("name")
        if not name or not isinstance(name, str):
            raise InvalidParamsError("Invalid params: 'name' must be a string")
        args = params.get("arguments")
        if args is None:
            args = {}
        if not isinstance(args, dict):
            raise InvalidParamsError("Invalid params: 'arguments' must be an object")

        tool = self.registry.lookup(name)
        if tool is None:
            suggestions = [candidate for candidate, _ in self.registry.suggest(name, MAX_SUGGESTIONS)]
            raise ToolNotFoundError(
                name,
                suggestions,
                code=INVALID_PARAMS if request_transport else METHOD_NOT_FOUND,
                normalized=normalize_tool_name(name),
            )

        handler = tool.handler
        if handler is None and self._default_handler is not None:
            handler = self._default_handler(tool.name)
        if handler is None:
            raise InternalError(f"No handler for tool: {name}")

        missing = find_missing_required(args, tool.input_schema)
        if missing:
            raise InvalidParamsError(describe_missing(missing, name, tool.input_schema))

        with _tracer.start_as_current_span("toolhost.tools.call") as span:
            span.set_attribute(ATTR_TOOL_NAME, tool.name)
            span.set_attribute(ATTR_TOOL_TIMEOUT, tool.timeout)
            if tool.handler_kind is not None:
                span.set_attribute(ATTR_HANDLER_KIND, tool.handler_kind.value)

            self._logger.debug("Calling handler for tool: %s", tool.name)
            try:
                raw = await call_handler(handler, args)
            except HandlerTimeoutError as exc:
                raise InternalError(f"Tool '{tool.name}' timed out after {exc.timeout:g}s") from exc
            self._logger.debug("Handler returned for tool: %s", tool.name)

        content = normalize_result(raw, log=self._logger)["content"]
        try:
            json.dumps(content, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise InternalError(f"Tool '{tool.name}' returned content that is not valid JSON: {exc}") from exc
        return {"content": content, "isError": False}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reply_error(
        self,
        expects_reply: bool,
        request_id: Any,
        error: ProtocolError,
    ) -> dict[str, Any] | None:
        if not expects_reply:
            self._logger.debug("Error for notification: %s", error.message)
            return None
        self._logger.debug("Replying with error %d: %s", error.code, error.message)
        return JsonRpcResponse.failure(request_id, error.code, error.message).to_wire()
