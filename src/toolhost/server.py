"""ToolServer — composes framing, registry, handler loading and dispatch.

All server state (registry, log, read buffer) lives on the instance, so any
number of independent servers can exist in one process.

Usage::

    server = ToolServer(ServerInfo(name="issue-tools", version="1.0.0"), log_dir="/tmp/logs")
    server.register_tool(Tool(name="echo", handler=lambda args: args))
    server.load_tools(config.tools, base_dir=config.base_dir)
    asyncio.run(server.serve_stdio())

Messages are processed strictly one at a time: each is handled to completion
(including its handler) before the next buffered message is dispatched.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from toolhost.config import ServerConfig, ToolConfig
from toolhost.errors import ServerStartupError
from toolhost.logs import close_server_logger, create_server_logger
from toolhost.protocol.engine import DefaultHandlerFactory, ProtocolEngine
from toolhost.protocol.errors import FramingError
from toolhost.protocol.framing import ReadBuffer
from toolhost.protocol.models import ServerInfo
from toolhost.protocol.transport import ServerTransport, StdioServerTransport
from toolhost.registry.models import Handler, Tool
from toolhost.registry.registry import ToolRegistry
from toolhost.runtime.handlers import RuntimeCommands
from toolhost.runtime.loader import HandlerLoader, LoadReport

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import IO


class ToolServer:
    """One tool server instance."""

    def __init__(
        self,
        server_info: ServerInfo,
        *,
        log_dir: str | os.PathLike[str] | None = None,
        runtimes: RuntimeCommands | None = None,
        default_handler: DefaultHandlerFactory | None = None,
        log_stream: IO[str] | None = None,
        log_level: int = logging.DEBUG,
    ) -> None:
        self.server_info = server_info
        self.log_dir = os.fspath(log_dir) if log_dir is not None else None
        self.logger = create_server_logger(server_info, log_dir=log_dir, stream=log_stream, level=log_level)
        self.registry = ToolRegistry(logger=self.logger)
        self.loader = HandlerLoader(runtimes=runtimes, logger=self.logger)
        self.engine = ProtocolEngine(
            server_info,
            self.registry,
            default_handler=default_handler,
            logger=self.logger,
        )
        self.read_buffer = ReadBuffer()

    @classmethod
    def from_config(cls, config: ServerConfig, **kwargs: Any) -> ToolServer:
        """Build a server from a descriptor and load all of its tools."""
        kwargs.setdefault("log_dir", config.log_dir)
        server = cls(ServerInfo(name=config.name, version=config.version), **kwargs)
        server.load_tools(config.tools, base_dir=config.base_dir)
        return server

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def register_tool(
        self,
        tool: Tool | ToolConfig | dict[str, Any],
        handler: Handler | None = None,
    ) -> Tool:
        """Register a tool, optionally binding an in-process *handler*."""
        if isinstance(tool, dict):
            tool = ToolConfig.model_validate(tool)
        if isinstance(tool, ToolConfig):
            tool = tool.to_tool()
        if handler is not None:
            tool.handler = handler
        return self.registry.register(tool)

    def load_tool_handlers(
        self,
        tools: Iterable[Tool],
        base_dir: str | os.PathLike[str] | None = None,
    ) -> LoadReport:
        """Attach subprocess handlers to *tools* from their handler paths."""
        return self.loader.load(tools, base_dir)

    def load_tools(
        self,
        configs: Iterable[ToolConfig | dict[str, Any]],
        base_dir: str | os.PathLike[str] | None = None,
    ) -> LoadReport:
        """Build tools from descriptor entries, load their handlers, register them."""
        tools = [
            (ToolConfig.model_validate(c) if isinstance(c, dict) else c).to_tool()
            for c in configs
        ]
        report = self.load_tool_handlers(tools, base_dir)
        for tool in tools:
            self.registry.register(tool)
        return report

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Dispatch one parsed stream message."""
        return await self.engine.handle_message(message)

    async def handle_request(self, request: Any) -> dict[str, Any] | None:
        """Dispatch one request from a request/response transport."""
        return await self.engine.handle_request(request)

    async def process_read_buffer(self, transport: ServerTransport) -> None:
        """Handle every complete message currently buffered, in order."""
        while True:
            try:
                message = self.read_buffer.read_message()
            except FramingError as exc:
                # No id is recoverable from a malformed line, so nothing is sent.
                self.logger.debug("Parse error: %s", exc.detail)
                continue
            if message is None:
                return

            try:
                self.logger.debug("recv: %s", json.dumps(message))
                response = await self.handle_message(message)
                if response is not None:
                    self.logger.debug("send: %s", json.dumps(response))
                    await transport.send(response)
            except Exception as exc:
                # One bad message must not stop the ones buffered after it.
                self.logger.error("Error processing message: %s", exc, exc_info=True)

    def ensure_ready(self) -> None:
        """Raise :class:`ServerStartupError` if the server has nothing to serve."""
        if not len(self.registry):
            raise ServerStartupError("No tools registered")

    async def serve(self, transport: ServerTransport) -> None:
        """Read from *transport* until end of stream, answering each message."""
        self.logger.debug("v%s ready", self.server_info.version)
        self.logger.debug("  tools: %s", ", ".join(self.registry.names()))
        self.ensure_ready()

        await transport.connect()
        self.logger.debug("listening...")
        try:
            while True:
                chunk = await transport.read_chunk()
                if not chunk:
                    if len(self.read_buffer):
                        self.logger.debug(
                            "Discarding %d bytes of incomplete message at end of stream",
                            len(self.read_buffer),
                        )
                        self.read_buffer.clear()
                    break
                self.read_buffer.append(chunk)
                await self.process_read_buffer(transport)
        finally:
            await transport.close()
            self.logger.debug("transport closed")

    async def serve_stdio(self) -> None:
        """Serve on this process's stdin/stdout."""
        await self.serve(StdioServerTransport())

    def close(self) -> None:
        """Release the log file."""
        close_server_logger(self.logger)
