"""End-to-end: ``toolhost serve`` as a subprocess speaking JSON over stdio."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path
from typing import Any


def _serve(config: Path, messages: list[Any], raw_prefix: bytes = b"") -> tuple[list[dict[str, Any]], str]:
    stdin = raw_prefix + b"".join(json.dumps(m).encode() + b"\n" for m in messages)
    proc = subprocess.run(
        [sys.executable, "-m", "toolhost.cli", "serve", str(config)],
        input=stdin,
        capture_output=True,
        timeout=60,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr.decode()
    responses = [json.loads(line) for line in proc.stdout.decode().splitlines() if line.strip()]
    return responses, proc.stderr.decode()


class TestStdioServer:
    def test_full_session(self, tmp_path: Path) -> None:
        (tmp_path / "handlers").mkdir()
        (tmp_path / "handlers" / "echo.py").write_text(
            "import json, sys\n"
            "args = json.load(sys.stdin)\n"
            "print(json.dumps({'result': 'relative: ' + args['input']}))\n"
        )
        config = tmp_path / "tools.yaml"
        config.write_text(
            "name: e2e\n"
            "version: 9.9.9\n"
            f"log_dir: {tmp_path / 'logs'}\n"
            "tools:\n"
            "  - name: echo-tool\n"
            "    handler: handlers/echo.py\n"
            "    inputSchema: {type: object, required: [input]}\n"
        )
        responses, stderr = _serve(
            config,
            [
                {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "2024-11-05"}},
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "echo-tool", "arguments": {"input": "path"}}},
                {"jsonrpc": "2.0", "id": 4, "method": "tools/call", "params": {"name": "echo_tol", "arguments": {}}},
            ],
            raw_prefix=b"this is not json\n",
        )

        assert [r["id"] for r in responses] == [1, 2, 3, 4]
        assert responses[0]["result"]["serverInfo"] == {"name": "e2e", "version": "9.9.9"}
        assert responses[1]["result"]["tools"][0]["name"] == "echo_tool"
        assert responses[2]["result"]["content"] == [{"type": "text", "text": '{"result":"relative: path"}'}]
        assert responses[3]["error"]["code"] == -32601
        assert "echo_tool" in responses[3]["error"]["message"]
        assert "[e2e]" in stderr

        log_text = (tmp_path / "logs" / "server.log").read_text()
        assert log_text.startswith("# e2e MCP Server Log\n")
        assert "Parse error" in log_text
