"""Per-server debug log mirrored to stderr and ``<log_dir>/server.log``.

Each :class:`~toolhost.server.ToolServer` owns one private
:class:`logging.Logger` built by :func:`create_server_logger`.  It is not
registered with the global logging manager, so independent servers (e.g. in
tests) never share handlers.

The log file is created lazily on the first record, together with any missing
parent directories, and is truncated and stamped with a header at that point.
Failures to open or write the file are swallowed: logging is best effort and
must never abort a tool call.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO

from toolhost.protocol.models import ServerInfo

LOG_FILE_NAME = "server.log"


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ServerLogFormatter(logging.Formatter):
    """``[<iso timestamp>] [<server name>] <message>``."""

    def __init__(self, server_name: str) -> None:
        super().__init__()
        self._server_name = server_name

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message += "\n" + self.formatException(record.exc_info)
        stamp = datetime.fromtimestamp(record.created, timezone.utc)
        iso = stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return f"[{iso}] [{self._server_name}] {message}"


class QuietStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler that drops records instead of reporting write errors."""

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        return


class LazyLogFileHandler(logging.Handler):
    """Appends to ``<log_dir>/server.log``, opening it on first use.

    Opening truncates the file and writes a header naming the server, its
    version, and the start time.
    """

    def __init__(self, log_dir: str | os.PathLike[str], server_info: ServerInfo) -> None:
        super().__init__()
        self.log_dir = os.fspath(log_dir)
        self.path = os.path.join(self.log_dir, LOG_FILE_NAME)
        self._server_info = server_info
        self._stream: IO[str] | None = None
        self._failed = False

    @property
    def initialized(self) -> bool:
        return self._stream is not None

    def _open(self) -> IO[str] | None:
        if self._stream is not None or self._failed:
            return self._stream
        try:
            os.makedirs(self.log_dir, exist_ok=True)
            stream = open(self.path, "w", encoding="utf-8")  # noqa: SIM115
            stream.write(
                f"# {self._server_info.name} MCP Server Log\n"
                f"# Started: {_iso_now()}\n"
                f"# Version: {self._server_info.version}\n\n"
            )
            stream.flush()
        except OSError:
            self._failed = True
            return None
        self._stream = stream
        return stream

    def emit(self, record: logging.LogRecord) -> None:
        stream = self._open()
        if stream is None:
            return
        try:
            stream.write(self.format(record) + "\n")
            stream.flush()
        except (OSError, ValueError):
            return

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        return

    def close(self) -> None:
        self.acquire()
        try:
            if self._stream is not None:
                try:
                    self._stream.close()
                except OSError:
                    pass
                self._stream = None
        finally:
            self.release()
        super().close()


def create_server_logger(
    server_info: ServerInfo,
    *,
    log_dir: str | os.PathLike[str] | None = None,
    stream: IO[str] | None = None,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """Build the private logger for one server instance."""
    log = logging.Logger(f"toolhost.server.{server_info.name}", level)
    formatter = ServerLogFormatter(server_info.name)

    stderr_handler = QuietStreamHandler(stream or sys.stderr)
    stderr_handler.setFormatter(formatter)
    log.addHandler(stderr_handler)

    if log_dir is not None:
        file_handler = LazyLogFileHandler(log_dir, server_info)
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    return log


def close_server_logger(log: logging.Logger) -> None:
    for handler in list(log.handlers):
        handler.close()
        log.removeHandler(handler)
