"""
Process Runner
==============

Runs an external command-line tool under a hard wall-clock bound. Output is
captured in full; the child never gets an interactive stdin.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from render_service.config.logging import get_logger
from render_service.config.settings import get_settings
from render_service.core.exceptions import (
    ProcessExitError,
    ProcessSpawnError,
    ProcessTimeoutError,
)

logger = get_logger(__name__)


@dataclass
class ProcessResult:
    """Captured output of a successful run."""

    stdout: str
    stderr: str
    returncode: int = 0


async def _kill_and_reap(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


async def run_process(
    command: str, args: Sequence[str], timeout_ms: Optional[int] = None
) -> ProcessResult:
    """
    Run ``command`` with ``args`` and wait for it to exit.

    Args:
        command: Executable name or path
        args: Arguments passed verbatim (no shell)
        timeout_ms: Hard bound; the child is killed when it is exceeded.
            Defaults to the process_timeout_ms setting

    Returns:
        ProcessResult with decoded stdout and stderr

    Raises:
        ProcessSpawnError: If the executable cannot be started
        ProcessTimeoutError: If the bound expires before the child exits
        ProcessExitError: If the child exits with a non-zero status
    """
    if timeout_ms is None:
        timeout_ms = get_settings().process_timeout_ms
    log = logger.bind(command=command)
    started = time.monotonic()

    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        log.error("Failed to spawn process", error=str(e))
        raise ProcessSpawnError(f"Failed to start {command}: {e}") from e

    log.debug("Process started", pid=proc.pid, timeout_ms=timeout_ms)

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            proc.communicate(), timeout=timeout_ms / 1000
        )
    except asyncio.TimeoutError:
        await _kill_and_reap(proc)
        log.error("Process timed out and was killed", pid=proc.pid, timeout_ms=timeout_ms)
        raise ProcessTimeoutError(command, timeout_ms)
    except asyncio.CancelledError:
        await _kill_and_reap(proc)
        raise

    stdout = stdout_bytes.decode("utf-8", errors="replace")
    stderr = stderr_bytes.decode("utf-8", errors="replace")
    elapsed_ms = round((time.monotonic() - started) * 1000)

    if proc.returncode != 0:
        output = stderr.strip() or stdout.strip()
        log.error(
            "Process exited with error",
            returncode=proc.returncode,
            elapsed_ms=elapsed_ms,
            output=output[-2000:],
        )
        raise ProcessExitError(command, proc.returncode, output)

    log.debug("Process completed", elapsed_ms=elapsed_ms)
    return ProcessResult(stdout=stdout, stderr=stderr, returncode=proc.returncode)
