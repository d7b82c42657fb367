"""Data models for the handler execution engine."""

from __future__ import annotations

import os
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_TIMEOUT = 60.0


class HandlerKind(str, Enum):
    """Runtime strategy for an on-disk handler, chosen by file extension."""

    SHELL = "shell"
    PYTHON = "python"
    GO = "go"
    SCRIPT = "script"

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> HandlerKind:
        """Pick the runtime for *path*; unknown extensions use the script runtime."""
        ext = os.path.splitext(os.fspath(path))[1].lower()
        return _EXTENSIONS.get(ext, cls.SCRIPT)


_EXTENSIONS = {
    ".sh": HandlerKind.SHELL,
    ".py": HandlerKind.PYTHON,
    ".go": HandlerKind.GO,
}


class ExecutionRequest(BaseModel):
    """A request to run one handler process."""

    command: list[str] = Field(..., description="Command and arguments to execute.")
    stdin: str | None = Field(default=None, description="Optional stdin input.")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Max execution time in seconds.")
    env: dict[str, str] = Field(default_factory=dict, description="Extra env vars for this request.")
    cwd: str | None = Field(default=None, description="Working directory for the process.")


class ProcessResult(BaseModel):
    """Outcome of a finished (or killed) handler process."""

    exit_code: int = Field(..., description="Process exit code.")
    stdout: str = Field(default="", description="Captured stdout.")
    stderr: str = Field(default="", description="Captured stderr.")
    timed_out: bool = Field(default=False, description="Whether the execution timed out.")


class HandlerResult(BaseModel):
    """Success-with-value or failure-with-message from one handler invocation.

    Subprocess invokers never raise for process failures; they return a
    failed ``HandlerResult`` and the bound handler converts it into an
    exception at the boundary.
    """

    ok: bool
    value: Any = None
    error: str = ""
    timed_out: bool = False

    @classmethod
    def success(cls, value: Any) -> HandlerResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, *, timed_out: bool = False) -> HandlerResult:
        return cls(ok=False, error=error, timed_out=timed_out)
