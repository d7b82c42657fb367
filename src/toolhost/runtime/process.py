"""Timeout-bounded child process execution.

Each handler process runs in its own session so that the whole process group
(including anything the handler spawned) can be killed on timeout.  Normal
exit, timeout and cancellation all converge on :func:`_reap`, which kills and
waits for the process exactly once.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal

from toolhost.runtime.models import ExecutionRequest, ProcessResult

logger = logging.getLogger(__name__)


async def run_process(request: ExecutionRequest) -> ProcessResult:
    """Run ``request.command`` and capture its output.

    Raises:
        OSError: The command could not be started.
    """
    env = {**os.environ, **request.env}
    proc = await asyncio.create_subprocess_exec(
        *request.command,
        stdin=asyncio.subprocess.PIPE if request.stdin is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=env,
        cwd=request.cwd,
        start_new_session=True,
    )
    stdin_bytes = request.stdin.encode() if request.stdin is not None else None

    timed_out = False
    stdout = stderr = b""
    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(input=stdin_bytes),
            timeout=request.timeout,
        )
    except TimeoutError:
        timed_out = True
        logger.warning("Process %s timed out after %ss, killing", request.command, request.timeout)
    finally:
        await _reap(proc)

    return ProcessResult(
        exit_code=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else "",
        timed_out=timed_out,
    )


async def _reap(proc: asyncio.subprocess.Process) -> None:
    """Kill the process group if anything in it is still alive, then wait."""
    _kill_group(proc)
    await proc.wait()


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    if hasattr(os, "killpg"):
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
        return
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
