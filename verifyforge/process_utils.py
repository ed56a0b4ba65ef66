"""Helpers for spawning and signalling verification subprocesses."""

from __future__ import annotations

import logging
import os
import signal
from typing import Protocol

logger = logging.getLogger(__name__)

TERMINATED_EXIT_CODE = 128 + signal.SIGTERM


class ProcessHandle(Protocol):
    pid: int

    @property
    def returncode(self) -> int | None: ...

    def terminate(self) -> None: ...


def merged_env(overlay: dict[str, str] | None = None) -> dict[str, str]:
    """Return the ambient environment with colour disabled and *overlay* applied."""

    return {**os.environ, "NO_COLOR": "1", **(overlay or {})}


def decode_output(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def normalize_returncode(returncode: int | None) -> int:
    """Map a signal death (negative return code) to the shell's ``128 + signum``."""

    if returncode is None:
        return 1
    if returncode < 0:
        return 128 - returncode
    return returncode


def terminate_process_tree(handle: ProcessHandle) -> bool:
    """Send SIGTERM to *handle* and everything it spawned.

    Processes are started as session leaders, so their process group holds the
    whole subtree. Returns ``True`` when a signal was delivered. A process
    that already exited is not an error.
    """

    if handle.returncode is not None:
        return False

    killpg = getattr(os, "killpg", None)
    getpgid = getattr(os, "getpgid", None)

    try:
        if callable(killpg) and callable(getpgid) and getpgid(handle.pid) == handle.pid:
            killpg(handle.pid, signal.SIGTERM)
        else:
            handle.terminate()
    except ProcessLookupError:
        return False
    except OSError as exc:
        logger.debug("could not terminate pid %s: %s", handle.pid, exc)
        return False

    return True
