"""Tests for the per-server log."""

import io
import re
from pathlib import Path

from toolhost.logs import LOG_FILE_NAME, LazyLogFileHandler, close_server_logger, create_server_logger
from toolhost.protocol.models import ServerInfo

INFO = ServerInfo(name="issue-tools", version="1.2.3")


class TestServerLogger:
    def test_line_format(self) -> None:
        stream = io.StringIO()
        log = create_server_logger(INFO, stream=stream)
        log.debug("listening...")
        close_server_logger(log)
        assert re.fullmatch(r"\[\d{4}-\d\d-\d\dT[\d:.]+Z\] \[issue-tools\] listening\.\.\.\n", stream.getvalue())

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        log = create_server_logger(INFO, stream=stream, level=30)
        log.debug("hidden")
        log.warning("shown")
        close_server_logger(log)
        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_loggers_are_private(self) -> None:
        a = create_server_logger(INFO, stream=io.StringIO())
        b = create_server_logger(INFO, stream=io.StringIO())
        assert a is not b
        close_server_logger(a)
        close_server_logger(b)


class TestLogFile:
    def test_file_is_created_lazily_with_header(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "nested" / "logs"
        log = create_server_logger(INFO, log_dir=log_dir, stream=io.StringIO())
        assert not log_dir.exists()

        log.debug("first entry")
        close_server_logger(log)

        lines = (log_dir / LOG_FILE_NAME).read_text().splitlines()
        assert lines[0] == "# issue-tools MCP Server Log"
        assert lines[1].startswith("# Started: ")
        assert lines[2] == "# Version: 1.2.3"
        assert lines[3] == ""
        assert lines[4].endswith("[issue-tools] first entry")

    def test_file_is_truncated_on_restart(self, tmp_path: Path) -> None:
        for message in ("run one", "run two"):
            log = create_server_logger(INFO, log_dir=tmp_path, stream=io.StringIO())
            log.debug(message)
            close_server_logger(log)
        content = (tmp_path / LOG_FILE_NAME).read_text()
        assert "run one" not in content
        assert "run two" in content

    def test_unwritable_location_is_swallowed(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        handler = LazyLogFileHandler(blocker / "logs", INFO)
        stream = io.StringIO()
        log = create_server_logger(INFO, stream=stream)
        log.addHandler(handler)

        log.debug("still logged to stderr")

        assert not handler.initialized
        assert "still logged to stderr" in stream.getvalue()
        close_server_logger(log)

    def test_initialized_after_first_write(self, tmp_path: Path) -> None:
        handler = LazyLogFileHandler(tmp_path, INFO)
        log = create_server_logger(INFO, stream=io.StringIO())
        log.addHandler(handler)
        assert not handler.initialized
        log.debug("x")
        assert handler.initialized
        assert handler.path == str(tmp_path / LOG_FILE_NAME)
        close_server_logger(log)
