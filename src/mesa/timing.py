"""Timing capture for a single execution of the target program.

Measures wall-clock time strictly around the spawn/wait boundary, plus
user and system CPU time of the child from ``resource.getrusage``.
Anything done with the child's output (echoing it in verbose mode)
happens after the clock has stopped.
"""

from __future__ import annotations

import logging
import resource
import subprocess
import time
from dataclasses import dataclass

from mesa.errors import SpawnError

log = logging.getLogger("mesa")


# ---------------------------------------------------------------------------
# TimedResult
# ---------------------------------------------------------------------------


@dataclass
class TimedResult:
    """Result of a timed subprocess execution."""

    wall_time_s: float
    user_time_s: float
    sys_time_s: float
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def cpu_time_s(self) -> float:
        """Total CPU time (user + system)."""
        return self.user_time_s + self.sys_time_s

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


# ---------------------------------------------------------------------------
# Core timing implementation
# ---------------------------------------------------------------------------


def run_timed(
    command: list[str],
    *,
    capture: bool = False,
) -> TimedResult:
    """Execute *command* once and time it.

    Args:
        command: Program followed by its arguments.  Never run through a
            shell.
        capture: If True, collect stdout/stderr so the caller can show
            them later.  Otherwise the child's output is discarded.

    Returns:
        TimedResult with timing data and, when captured, process output.

    Raises:
        SpawnError: The program could not be started (not found, not
            executable, ...).  This is independent of the exit code.
    """
    stream = subprocess.PIPE if capture else subprocess.DEVNULL

    pre_rusage = resource.getrusage(resource.RUSAGE_CHILDREN)
    wall_start = time.perf_counter()
    try:
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=stream,
            stderr=stream,
            text=True,
            errors="replace",
        )
    except OSError as exc:
        raise SpawnError(f"Error executing program {command[0]!r}: {exc}") from exc

    stdout, stderr = proc.communicate()
    wall_time = time.perf_counter() - wall_start

    post_rusage = resource.getrusage(resource.RUSAGE_CHILDREN)
    user_time = post_rusage.ru_utime - pre_rusage.ru_utime
    sys_time = post_rusage.ru_stime - pre_rusage.ru_stime

    return TimedResult(
        wall_time_s=wall_time,
        user_time_s=max(user_time, 0.0),
        sys_time_s=max(sys_time, 0.0),
        exit_code=proc.returncode,
        stdout=stdout or "",
        stderr=stderr or "",
    )
