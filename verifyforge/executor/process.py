from __future__ import annotations

import asyncio
import logging
import signal
import time
from pathlib import Path
from typing import TYPE_CHECKING

from verifyforge.config.types import Command
from verifyforge.process_utils import (
    TERMINATED_EXIT_CODE,
    decode_output,
    merged_env,
    normalize_returncode,
    terminate_process_tree,
)

from .types import ExecResult

if TYPE_CHECKING:
    from verifyforge.graph.tracker import ReportingDependencyTracker

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int(round((time.monotonic() - start) * 1000))


def _resolve_cwd(command_cwd: str | None, cwd: str) -> str:
    if command_cwd is None:
        return cwd
    return str(Path(cwd) / command_cwd)


async def execute_command(
    command: Command,
    cwd: str,
    tracker: ReportingDependencyTracker | None = None,
    path: str | None = None,
) -> ExecResult:
    """Run *command* to completion, capturing stdout and stderr as one stream.

    While it runs, the process is registered with *tracker* under *path* so a
    failing dependency can terminate it. Launch failures are returned as exit
    code 1 with a diagnostic in place of the output, never raised.
    """
    start = time.monotonic()
    workdir = _resolve_cwd(command.cwd, cwd)

    try:
        proc = await asyncio.create_subprocess_exec(
            command.cmd,
            *command.args,
            cwd=workdir,
            env=merged_env(command.env),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            start_new_session=True,
        )
    except OSError as exc:
        logger.debug("%s: failed to launch %s: %s", path, command, exc)
        return ExecResult(
            code=1,
            output=f"Failed to execute command: {exc}",
            duration_ms=_elapsed_ms(start),
            killed=False,
        )

    logger.debug("%s: started pid %s: %s", path, proc.pid, command)
    tracked = tracker is not None and path is not None
    if tracked:
        tracker.register_process(path, proc)

    try:
        stdout, _ = await proc.communicate()
    except asyncio.CancelledError:
        terminate_process_tree(proc)
        raise
    finally:
        if tracked:
            tracker.unregister_process(path)

    returncode = proc.returncode
    # A process that exited 0 before the signal landed keeps its success.
    killed = (
        returncode == -signal.SIGTERM
        or returncode == TERMINATED_EXIT_CODE
        or (tracked and tracker.was_killed(path) and returncode != 0)
    )
    duration_ms = _elapsed_ms(start)
    logger.debug("%s: exited with %s after %sms", path, returncode, duration_ms)

    return ExecResult(
        code=normalize_returncode(returncode),
        output=decode_output(stdout),
        duration_ms=duration_ms,
        killed=bool(killed),
    )
