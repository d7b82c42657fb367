"""Error types for the handler execution engine."""

from __future__ import annotations

from toolhost.errors import ToolhostError


class HandlerError(ToolhostError):
    """Base error for handler loading and execution failures."""


class HandlerLoadError(HandlerError):
    """A handler could not be loaded (missing file, unreadable, ...)."""

    def __init__(self, tool_name: str, detail: str) -> None:
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"Cannot load handler for {tool_name}: {detail}")


class HandlerPathError(HandlerLoadError):
    """A relative handler path resolved outside the base directory."""

    def __init__(self, tool_name: str, resolved: str, base_dir: str) -> None:
        self.resolved = resolved
        self.base_dir = base_dir
        super().__init__(
            tool_name,
            f"handler path escapes base directory: {resolved} is not within {base_dir}",
        )


class HandlerExecutionError(HandlerError):
    """A handler ran but failed (non-zero exit, bad output, exception)."""

    def __init__(self, tool_name: str, detail: str = "") -> None:
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"Handler for {tool_name} failed" + (f": {detail}" if detail else ""))


class HandlerTimeoutError(HandlerExecutionError):
    """A handler process exceeded its timeout and was killed."""

    def __init__(self, tool_name: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(tool_name, f"timed out after {timeout:g}s")
