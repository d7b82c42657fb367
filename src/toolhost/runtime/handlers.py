"""Handler invokers — one per :class:`HandlerKind`.

Every invoker satisfies :class:`HandlerInvoker` and turns a tool call into a
child process:

* **shell** — arguments become ``INPUT_<KEY>`` environment variables and
  outputs are read back from the ``key=value`` file named by
  ``GITHUB_OUTPUT``.  Result: ``{"stdout", "stderr", "outputs"}``.
* **python**, **go**, **script** — JSON arguments on stdin, JSON result on
  stdout.  Output that is not JSON is returned as ``{"stdout", "stderr"}``.

Invokers never raise for process failures; they return a failed
:class:`HandlerResult`.  :class:`BoundHandler` is where that failure becomes
an exception.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from toolhost.runtime.errors import HandlerExecutionError, HandlerTimeoutError
from toolhost.runtime.models import (
    DEFAULT_TIMEOUT,
    ExecutionRequest,
    HandlerKind,
    HandlerResult,
    ProcessResult,
)
from toolhost.runtime.process import run_process

logger = logging.getLogger(__name__)

OUTPUT_FILE_ENV = "GITHUB_OUTPUT"
INPUT_ENV_PREFIX = "INPUT_"


class RuntimeCommands(BaseModel):
    """Command prefixes used to launch each handler kind."""

    shell: list[str] = Field(default_factory=lambda: ["bash"])
    python: list[str] = Field(default_factory=lambda: [sys.executable or "python3"])
    go: list[str] = Field(default_factory=lambda: ["go", "run"])
    script: list[str] = Field(default_factory=lambda: ["node"])


@runtime_checkable
class HandlerInvoker(Protocol):
    """Runs one on-disk handler for a set of arguments."""

    kind: HandlerKind
    path: Path

    async def invoke(self, args: dict[str, Any], timeout: float) -> HandlerResult: ...


def input_env_name(key: str) -> str:
    """``my-input`` -> ``INPUT_MY_INPUT``."""
    return INPUT_ENV_PREFIX + key.replace("-", "_").replace(" ", "_").upper()


def _env_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def parse_output_file(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines, plus ``key<<DELIM`` multi-line blocks."""
    outputs: dict[str, str] = {}
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        if "<<" in line and ("=" not in line or line.index("<<") < line.index("=")):
            key, delimiter = line.split("<<", 1)
            block: list[str] = []
            while i < len(lines) and lines[i] != delimiter:
                block.append(lines[i])
                i += 1
            i += 1  # delimiter
            outputs[key.strip()] = "\n".join(block)
        elif "=" in line:
            key, value = line.split("=", 1)
            outputs[key.strip()] = value
    return outputs


def _has_shebang(path: Path) -> bool:
    try:
        with path.open("rb") as f:
            return f.read(2) == b"#!"
    except OSError:
        return False


def _process_failure(process: ProcessResult, timeout: float) -> HandlerResult | None:
    if process.timed_out:
        return HandlerResult.failure(f"timed out after {timeout:g}s", timed_out=True)
    if process.exit_code != 0:
        detail = process.stderr.strip() or process.stdout.strip()
        message = f"exited with code {process.exit_code}"
        return HandlerResult.failure(f"{message}: {detail}" if detail else message)
    return None


class ShellInvoker:
    """Runs a shell script with the GitHub Actions input/output convention."""

    kind = HandlerKind.SHELL

    def __init__(self, path: Path, command: list[str] | None = None) -> None:
        self.path = path
        self._command = command or RuntimeCommands().shell

    def _argv(self) -> list[str]:
        if os.access(self.path, os.X_OK) and _has_shebang(self.path):
            return [str(self.path)]
        return [*self._command, str(self.path)]

    async def invoke(self, args: dict[str, Any], timeout: float) -> HandlerResult:
        fd, output_file = tempfile.mkstemp(prefix="toolhost-output-", suffix=".txt")
        os.close(fd)
        try:
            env = {input_env_name(key): _env_value(value) for key, value in args.items()}
            env[OUTPUT_FILE_ENV] = output_file
            request = ExecutionRequest(
                command=self._argv(),
                timeout=timeout,
                env=env,
                cwd=str(self.path.parent),
            )
            try:
                process = await run_process(request)
            except OSError as exc:
                return HandlerResult.failure(f"cannot start {self.path}: {exc}")

            failure = _process_failure(process, timeout)
            if failure is not None:
                return failure

            outputs = parse_output_file(Path(output_file).read_text(encoding="utf-8", errors="replace"))
            return HandlerResult.success(
                {"stdout": process.stdout, "stderr": process.stderr, "outputs": outputs}
            )
        finally:
            try:
                os.unlink(output_file)
            except OSError:
                logger.debug("Could not remove output file %s", output_file)


class StdioJsonInvoker:
    """Runs ``<command> <path>`` with JSON on stdin and JSON on stdout."""

    kind = HandlerKind.SCRIPT

    def __init__(self, path: Path, command: list[str]) -> None:
        self.path = path
        self._command = command

    async def invoke(self, args: dict[str, Any], timeout: float) -> HandlerResult:
        request = ExecutionRequest(
            command=[*self._command, str(self.path)],
            stdin=json.dumps(args),
            timeout=timeout,
            cwd=str(self.path.parent),
        )
        try:
            process = await run_process(request)
        except OSError as exc:
            return HandlerResult.failure(f"cannot start {self._command[0]}: {exc}")

        failure = _process_failure(process, timeout)
        if failure is not None:
            return failure

        try:
            return HandlerResult.success(json.loads(process.stdout))
        except json.JSONDecodeError:
            return HandlerResult.success({"stdout": process.stdout, "stderr": process.stderr})


class PythonInvoker(StdioJsonInvoker):
    kind = HandlerKind.PYTHON

    def __init__(self, path: Path, command: list[str] | None = None) -> None:
        super().__init__(path, command or RuntimeCommands().python)


class GoInvoker(StdioJsonInvoker):
    kind = HandlerKind.GO

    def __init__(self, path: Path, command: list[str] | None = None) -> None:
        super().__init__(path, command or RuntimeCommands().go)


class ScriptInvoker(StdioJsonInvoker):
    kind = HandlerKind.SCRIPT

    def __init__(self, path: Path, command: list[str] | None = None) -> None:
        super().__init__(path, command or RuntimeCommands().script)


def create_invoker(
    kind: HandlerKind,
    path: Path,
    runtimes: RuntimeCommands | None = None,
) -> HandlerInvoker:
    """Build the invoker for *kind*."""
    runtimes = runtimes or RuntimeCommands()
    if kind is HandlerKind.SHELL:
        return ShellInvoker(path, runtimes.shell)
    if kind is HandlerKind.PYTHON:
        return PythonInvoker(path, runtimes.python)
    if kind is HandlerKind.GO:
        return GoInvoker(path, runtimes.go)
    return ScriptInvoker(path, runtimes.script)


class BoundHandler:
    """An invoker bound to a tool name and timeout, callable as ``handler(args)``.

    Raises :class:`HandlerTimeoutError` or :class:`HandlerExecutionError` when
    the invocation fails.
    """

    def __init__(
        self,
        tool_name: str,
        invoker: HandlerInvoker,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.tool_name = tool_name
        self.invoker = invoker
        self.timeout = timeout

    @property
    def kind(self) -> HandlerKind:
        return self.invoker.kind

    async def __call__(self, args: dict[str, Any]) -> Any:
        result = await self.invoker.invoke(args, self.timeout)
        if result.ok:
            return result.value
        if result.timed_out:
            raise HandlerTimeoutError(self.tool_name, self.timeout)
        raise HandlerExecutionError(self.tool_name, result.error)
