"""Tests for handler path resolution and HandlerLoader."""

import logging
import os
import stat
from pathlib import Path

import pytest

from toolhost.registry.models import Tool
from toolhost.runtime.errors import HandlerLoadError, HandlerPathError
from toolhost.runtime.handlers import BoundHandler
from toolhost.runtime.loader import HandlerLoader, ensure_executable, is_within, resolve_handler_path
from toolhost.runtime.models import HandlerKind

ECHO_PY = "import json, sys\nprint(json.dumps({'result': 'relative: ' + json.load(sys.stdin)['input']}))\n"


class TestIsWithin:
    def test_same_directory(self) -> None:
        assert is_within("/base", "/base")

    def test_descendant(self) -> None:
        assert is_within("/base/handlers/x.py", "/base")

    def test_sibling_with_common_prefix(self) -> None:
        assert not is_within("/base-evil/x.py", "/base")

    def test_parent(self) -> None:
        assert not is_within("/", "/base")


class TestResolveHandlerPath:
    def test_relative_inside_base(self, tmp_path: Path) -> None:
        resolved = resolve_handler_path("t", "handlers/x.py", tmp_path)
        assert resolved == tmp_path / "handlers" / "x.py"

    def test_relative_with_dots_staying_inside(self, tmp_path: Path) -> None:
        resolved = resolve_handler_path("t", "handlers/../x.py", tmp_path)
        assert resolved == tmp_path / "x.py"

    def test_traversal_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(HandlerPathError) as exc_info:
            resolve_handler_path("t", "../../etc/passwd", tmp_path)
        assert exc_info.value.tool_name == "t"
        assert str(tmp_path) in str(exc_info.value)

    def test_sibling_directory_rejected(self, tmp_path: Path) -> None:
        base = tmp_path / "base"
        with pytest.raises(HandlerPathError):
            resolve_handler_path("t", "../base-evil/x.py", base)

    def test_absolute_bypasses_base_and_is_logged(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        log = logging.getLogger("test.loader.audit")
        with caplog.at_level(logging.DEBUG, logger="test.loader.audit"):
            resolved = resolve_handler_path("t", "/opt/handlers/x.py", tmp_path, log=log)
        assert resolved == Path("/opt/handlers/x.py")
        assert "absolute path" in caplog.text

    def test_relative_without_base_uses_cwd(self) -> None:
        assert resolve_handler_path("t", "x.py") == Path(os.getcwd()) / "x.py"


class TestEnsureExecutable:
    def test_adds_exec_bit(self, tmp_path: Path) -> None:
        script = tmp_path / "s.sh"
        script.write_text("echo hi\n")
        script.chmod(0o644)
        assert ensure_executable("t", script)
        assert script.stat().st_mode & stat.S_IXUSR

    def test_chmod_failure_warns_and_continues(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        missing = tmp_path / "gone.sh"
        log = logging.getLogger("test.loader.chmod")
        with caplog.at_level(logging.WARNING, logger="test.loader.chmod"):
            assert not ensure_executable("t", missing, log=log)
        assert "Could not make script executable" in caplog.text


class TestHandlerLoader:
    def test_loads_relative_handler(self, tmp_path: Path) -> None:
        (tmp_path / "handlers").mkdir()
        (tmp_path / "handlers" / "echo.py").write_text(ECHO_PY)
        tool = Tool(name="echo", handler_path="handlers/echo.py", timeout=12)

        report = HandlerLoader().load([tool], tmp_path)

        assert report.loaded == 1
        assert report.errors == 0
        assert tool.has_handler
        assert tool.handler_kind is HandlerKind.PYTHON
        assert tool.handler_path == "handlers/echo.py"

    async def test_loaded_handler_returns_content(self, tmp_path: Path) -> None:
        (tmp_path / "echo.py").write_text(ECHO_PY)
        tool = Tool(name="echo", handler_path="echo.py")
        HandlerLoader().load([tool], tmp_path)
        result = await tool.handler({"input": "path"})  # type: ignore[misc]
        assert result == {"content": [{"type": "text", "text": '{"result":"relative: path"}'}]}

    def test_load_one_binds_timeout(self, tmp_path: Path) -> None:
        (tmp_path / "run.sh").write_text("echo hi\n")
        bound = HandlerLoader().load_one(Tool(name="sh", handler_path="run.sh", timeout=7), tmp_path)
        assert isinstance(bound, BoundHandler)
        assert bound.timeout == 7
        assert bound.kind is HandlerKind.SHELL

    def test_shell_script_made_executable(self, tmp_path: Path) -> None:
        script = tmp_path / "run.sh"
        script.write_text("echo hi\n")
        script.chmod(0o644)
        HandlerLoader().load([Tool(name="sh", handler_path="run.sh")], tmp_path)
        assert os.access(script, os.X_OK)

    def test_skips_tools_without_handler_path(self) -> None:
        tool = Tool(name="plain")
        report = HandlerLoader().load([tool])
        assert report.skipped == 1
        assert report.loaded == 0
        assert tool.handler is None

    def test_missing_file_is_counted_not_raised(self, tmp_path: Path) -> None:
        tool = Tool(name="missing", handler_path="/non/existent/handler.cjs")
        report = HandlerLoader().load([tool], tmp_path)
        assert report.errors == 1
        assert report.failed_tools == ["missing"]
        assert tool.handler is None

    def test_traversal_is_rejected_at_load(self, tmp_path: Path) -> None:
        base = tmp_path / "base"
        base.mkdir()
        outside = tmp_path / "outside.py"
        outside.write_text(ECHO_PY)
        tool = Tool(name="escape", handler_path="../outside.py")

        report = HandlerLoader().load([tool], base)

        assert report.errors == 1
        assert tool.handler is None
        assert tool.handler_kind is None

    def test_one_failure_does_not_stop_others(self, tmp_path: Path) -> None:
        (tmp_path / "ok.py").write_text(ECHO_PY)
        tools = [
            Tool(name="bad", handler_path="../../etc/passwd"),
            Tool(name="ok", handler_path="ok.py"),
            Tool(name="none"),
        ]
        report = HandlerLoader().load(tools, tmp_path)
        assert (report.loaded, report.skipped, report.errors) == (1, 1, 1)
        assert [t.has_handler for t in tools] == [False, True, False]

    def test_load_one_without_path_raises(self) -> None:
        with pytest.raises(HandlerLoadError, match="no handler path"):
            HandlerLoader().load_one(Tool(name="x"))
