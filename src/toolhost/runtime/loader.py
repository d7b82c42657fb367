"""HandlerLoader — resolve, validate, and bind on-disk tool handlers.

Handler paths come from the tools descriptor, which the server operator
controls.  When a base directory is given, relative paths are resolved inside
it and rejected if they escape it.  Absolute paths bypass that check but are
logged for auditing.

A failure to load one handler never aborts loading the others: the tool is
left without a handler and the failure is counted in the :class:`LoadReport`.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel

from toolhost.runtime.errors import HandlerLoadError, HandlerPathError
from toolhost.runtime.handlers import BoundHandler, RuntimeCommands, create_invoker
from toolhost.runtime.models import HandlerKind
from toolhost.runtime.results import wrap_handler

if TYPE_CHECKING:
    from collections.abc import Iterable

    from toolhost.registry.models import Tool

logger = logging.getLogger(__name__)


class LoadReport(BaseModel):
    """Counts from one :meth:`HandlerLoader.load` pass."""

    loaded: int = 0
    skipped: int = 0
    errors: int = 0
    failed_tools: list[str] = []


def is_within(path: str, base_dir: str) -> bool:
    """True if *path* is *base_dir* itself or a proper descendant of it.

    Both arguments must already be absolute and normalized.  The separator
    is part of the prefix so ``/base-evil`` is not inside ``/base``.
    """
    if path == base_dir:
        return True
    prefix = base_dir if base_dir.endswith(os.sep) else base_dir + os.sep
    return path.startswith(prefix)


def resolve_handler_path(
    tool_name: str,
    handler_path: str,
    base_dir: str | os.PathLike[str] | None = None,
    *,
    log: logging.Logger | None = None,
) -> Path:
    """Resolve *handler_path* to an absolute path.

    Raises:
        HandlerPathError: A relative path resolved outside *base_dir*.
    """
    log = log or logger
    if os.path.isabs(handler_path):
        log.debug("  [%s] Using absolute path (bypasses base directory validation): %s", tool_name, handler_path)
        return Path(os.path.normpath(handler_path))

    if base_dir is None:
        return Path(os.path.abspath(handler_path))

    normalized_base = os.path.abspath(os.fspath(base_dir))
    resolved = os.path.abspath(os.path.join(normalized_base, handler_path))
    log.debug("  [%s] Resolved relative path to: %s", tool_name, resolved)
    if not is_within(resolved, normalized_base):
        raise HandlerPathError(tool_name, resolved, normalized_base)
    return Path(resolved)


def ensure_executable(tool_name: str, path: Path, *, log: logging.Logger | None = None) -> bool:
    """Try to add the executable bits to *path*; never raises."""
    log = log or logger
    if os.access(path, os.X_OK):
        log.debug("  [%s] Script is executable", tool_name)
        return True
    try:
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as exc:
        log.warning("  [%s] Could not make script executable: %s", tool_name, exc)
        return False
    log.debug("  [%s] Made script executable", tool_name)
    return True


class HandlerLoader:
    """Attaches subprocess-backed handlers to tools that declare a handler path."""

    def __init__(
        self,
        *,
        runtimes: RuntimeCommands | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._runtimes = runtimes or RuntimeCommands()
        self._logger = logger or logging.getLogger(__name__)

    def load_one(self, tool: Tool, base_dir: str | os.PathLike[str] | None = None) -> BoundHandler:
        """Resolve and bind the handler for a single tool.

        Raises:
            HandlerLoadError: The path escapes *base_dir* or the file is missing.
        """
        if not tool.handler_path:
            raise HandlerLoadError(tool.name, "no handler path specified")

        resolved = resolve_handler_path(tool.name, tool.handler_path, base_dir, log=self._logger)
        self._logger.debug("  [%s] Loading handler from: %s", tool.name, resolved)
        if not resolved.is_file():
            raise HandlerLoadError(tool.name, f"handler file does not exist: {resolved}")
        if not os.access(resolved, os.R_OK):
            raise HandlerLoadError(tool.name, f"handler file is not readable: {resolved}")

        kind = HandlerKind.from_path(resolved)
        self._logger.debug("  [%s] Detected %s handler", tool.name, kind.value)
        if kind in (HandlerKind.SHELL, HandlerKind.PYTHON):
            ensure_executable(tool.name, resolved, log=self._logger)

        invoker = create_invoker(kind, resolved, self._runtimes)
        return BoundHandler(tool.name, invoker, tool.timeout)

    def load(
        self,
        tools: Iterable[Tool],
        base_dir: str | os.PathLike[str] | None = None,
    ) -> LoadReport:
        """Bind handlers for every tool that declares a handler path."""
        tools = list(tools)
        report = LoadReport()
        self._logger.debug("Loading tool handlers...")
        self._logger.debug("  Total tools to process: %d", len(tools))
        self._logger.debug("  Base path: %s", base_dir or "(not specified)")

        for tool in tools:
            if not tool.handler_path:
                self._logger.debug("  [%s] No handler path specified, skipping handler load", tool.name)
                report.skipped += 1
                continue
            try:
                bound = self.load_one(tool, base_dir)
            except HandlerLoadError as exc:
                self._logger.error("  [%s] ERROR: %s", tool.name, exc.detail)
                report.errors += 1
                report.failed_tools.append(tool.name)
                continue
            except OSError as exc:
                self._logger.error("  [%s] ERROR loading handler: %s", tool.name, exc)
                report.errors += 1
                report.failed_tools.append(tool.name)
                continue

            tool.handler = wrap_handler(tool.name, bound, log=self._logger)
            tool.handler_kind = bound.kind
            report.loaded += 1
            self._logger.debug(
                "  [%s] %s handler created successfully with timeout: %ss",
                tool.name,
                bound.kind.value,
                tool.timeout,
            )

        self._logger.debug("Handler loading complete:")
        self._logger.debug("  Loaded: %d", report.loaded)
        self._logger.debug("  Skipped (no handler path): %d", report.skipped)
        self._logger.debug("  Errors: %d", report.errors)
        return report
