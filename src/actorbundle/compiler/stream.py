"""Concurrent draining of a child process's stdout and stderr.

Each pipe gets its own reader thread. Both readers forward lines through one
bounded queue to a sink that runs on the calling thread, so a child that fills
one pipe while we wait on the other can never block the build. Readers are
joined before the caller looks at the exit status.
"""

from __future__ import annotations

import logging
import os
import queue
import re
import signal
import subprocess
import threading
import time
from collections.abc import Callable
from typing import IO

from actorbundle.runtime import build_log

logger = logging.getLogger(__name__)

Sink = Callable[[str, str], None]

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_KILL_GRACE_S = 5.0


def strip_ansi(value: str) -> str:
    return _ANSI_RE.sub("", value).rstrip("\r\n")


def log_sink(stream: str, line: str) -> None:
    build_log().warning("%s: %s", stream, line)


def _pump(name: str, pipe: IO[str], lines: queue.Queue[tuple[str, str | None]]) -> None:
    try:
        for line in pipe:
            lines.put((name, line))
    finally:
        pipe.close()
        lines.put((name, None))


def terminate(process: subprocess.Popen[str]) -> None:
    if process.poll() is not None:
        return
    if os.name == "posix":
        try:
            os.killpg(process.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    process.kill()


def drain_streams(
    process: subprocess.Popen[str],
    sink: Sink | None = None,
    *,
    queue_size: int = 1024,
    timeout_s: float | None = None,
) -> tuple[int, bool]:
    """Forward every output line to ``sink``; return (line count, timed out)."""
    sink = sink or log_sink
    if process.stdout is None or process.stderr is None:
        raise ValueError("process must be started with stdout and stderr pipes")
    lines: queue.Queue[tuple[str, str | None]] = queue.Queue(maxsize=max(1, queue_size))
    readers = [
        threading.Thread(
            target=_pump,
            args=("stderr", process.stderr, lines),
            name="actorbundle-stderr",
            daemon=True,
        ),
        threading.Thread(
            target=_pump,
            args=("stdout", process.stdout, lines),
            name="actorbundle-stdout",
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()

    deadline = None if timeout_s is None else time.monotonic() + timeout_s
    open_streams = len(readers)
    count = 0
    timed_out = False
    while open_streams:
        # the deadline holds even while output keeps arriving
        if deadline is not None and time.monotonic() >= deadline:
            if timed_out:
                logger.warning("compiler streams still open after kill, abandoning readers")
                break
            logger.warning("compiler timeout after %ss, killing pid=%s", timeout_s, process.pid)
            terminate(process)
            timed_out = True
            deadline = time.monotonic() + _KILL_GRACE_S
        wait = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            name, line = lines.get(timeout=wait)
        except queue.Empty:
            continue
        if line is None:
            open_streams -= 1
            continue
        count += 1
        sink(name, strip_ansi(line))

    if not open_streams:
        for reader in readers:
            reader.join()
    return count, timed_out
