"""Normalize arbitrary handler return values into MCP content results."""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

_PREVIEW_LEN = 200


def is_content_result(value: Any) -> bool:
    """True for objects already shaped like ``{"content": [...]}``."""
    return isinstance(value, dict) and isinstance(value.get("content"), list)


def serialize_result(value: Any, *, log: logging.Logger | None = None) -> str:
    """JSON-encode *value* compactly, falling back to ``str()``."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        (log or logger).debug("Result is not JSON serializable (%s), using str()", exc)
        return str(value)


def normalize_result(value: Any, *, log: logging.Logger | None = None) -> dict[str, Any]:
    """Return *value* unchanged if it is a content result, else wrap it as text."""
    if is_content_result(value):
        return value  # type: ignore[no-any-return]
    return {"content": [{"type": "text", "text": serialize_result(value, log=log)}]}


async def call_handler(handler: Callable[[dict[str, Any]], Any], args: dict[str, Any]) -> Any:
    """Call a sync or async handler and await the result if needed."""
    result = handler(args)
    if inspect.isawaitable(result):
        result = await result
    return result


def wrap_handler(
    tool_name: str,
    handler: Callable[[dict[str, Any]], Any],
    *,
    log: logging.Logger | None = None,
) -> Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]:
    """Wrap *handler* so it always returns a normalized content result.

    Exceptions raised by the handler are logged and re-raised.
    """
    log = log or logger

    async def wrapped(args: dict[str, Any]) -> dict[str, Any]:
        log.debug("  [%s] Invoking handler with args: %s", tool_name, serialize_result(args))
        try:
            result = await call_handler(handler, args)
        except Exception as exc:
            log.debug("  [%s] Handler threw error: %s", tool_name, exc)
            raise
        if is_content_result(result):
            log.debug("  [%s] Result is already in MCP format", tool_name)
            return result  # type: ignore[no-any-return]
        normalized = normalize_result(result, log=log)
        text: str = normalized["content"][0]["text"]
        suffix = "..." if len(text) > _PREVIEW_LEN else ""
        log.debug("  [%s] Serialized result: %s%s", tool_name, text[:_PREVIEW_LEN], suffix)
        return normalized

    wrapped.__wrapped__ = handler  # type: ignore[attr-defined]
    return wrapped
