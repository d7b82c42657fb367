"""Handler execution engine — load, bind, and run per-tool handlers."""

from toolhost.runtime.errors import (
    HandlerError,
    HandlerExecutionError,
    HandlerLoadError,
    HandlerPathError,
    HandlerTimeoutError,
)
from toolhost.runtime.handlers import BoundHandler, HandlerInvoker, RuntimeCommands, create_invoker
from toolhost.runtime.loader import HandlerLoader, LoadReport, resolve_handler_path
from toolhost.runtime.models import DEFAULT_TIMEOUT, HandlerKind, HandlerResult
from toolhost.runtime.results import normalize_result, wrap_handler

__all__ = [
    "DEFAULT_TIMEOUT",
    "BoundHandler",
    "HandlerError",
    "HandlerExecutionError",
    "HandlerInvoker",
    "HandlerKind",
    "HandlerLoadError",
    "HandlerLoader",
    "HandlerPathError",
    "HandlerResult",
    "HandlerTimeoutError",
    "LoadReport",
    "RuntimeCommands",
    "create_invoker",
    "normalize_result",
    "resolve_handler_path",
    "wrap_handler",
]
