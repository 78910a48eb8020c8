"""Timed execution of one build command.

Only wall-clock time is recorded; build tools fan out into worker
processes (MSBuild nodes, the Gradle daemon's children), so per-process
CPU accounting would not describe the build anyway.  On timeout the
command's whole session is killed for the same reason.
"""

from __future__ import annotations

import os
import signal
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from cliperf.logging import get_logger

log = get_logger("timing")

NOT_FOUND_EXIT_CODE = 127
TIMEOUT_EXIT_CODE = -1
_REAP_GRACE_S = 5


@dataclass
class TimedResult:
    """Outcome of one timed build command."""

    wall_time_s: float
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def run_timed(
    command: list[str],
    *,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    timeout: int = 600,
) -> TimedResult:
    """Run *command* to completion (or *timeout*) and time it.

    *env* is layered over the current environment.  A command that cannot
    be started reports exit code 127, like a shell would; a timed-out one
    reports -1 with ``timed_out`` set.
    """
    started = time.monotonic()
    try:
        proc = subprocess.Popen(
            command,
            cwd=cwd,
            env={**os.environ, **(env or {})},
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            start_new_session=True,
        )
    except FileNotFoundError as exc:
        log.debug("Cannot start %s: %s", command[0], exc)
        return TimedResult(0.0, NOT_FOUND_EXIT_CODE, "", str(exc))

    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        log.debug("%s exceeded %ds; killing its session", command[0], timeout)
        stdout, stderr = _terminate(proc)
        return TimedResult(
            wall_time_s=round(time.monotonic() - started, 6),
            exit_code=TIMEOUT_EXIT_CODE,
            stdout=stdout,
            stderr=stderr,
            timed_out=True,
        )

    return TimedResult(
        wall_time_s=round(time.monotonic() - started, 6),
        exit_code=proc.returncode,
        stdout=stdout,
        stderr=stderr,
    )


def _terminate(proc: subprocess.Popen[str]) -> tuple[str, str]:
    """Kill *proc*'s process group and collect whatever it printed."""
    try:
        os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
    except OSError:
        log.debug("Process group of %d already gone", proc.pid)
    try:
        return proc.communicate(timeout=_REAP_GRACE_S)
    except subprocess.TimeoutExpired:
        proc.kill()
        return proc.communicate()
