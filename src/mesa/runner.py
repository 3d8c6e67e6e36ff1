"""Benchmark execution engine.

Runs the target program in two sequential batches:

1. Warm-up: ``config.warmup`` repetitions, timed and logged but never
   stored.
2. Measured: ``config.runs`` repetitions whose mean and population
   standard deviation become the stored record.

Failure policy: a non-zero exit aborts the whole batch with
:class:`~mesa.errors.BenchmarkFailure` (every timing of that batch is
discarded) unless ``ignore_failure`` is set, in which case the run
counts as a normal timing.  A program that cannot be started always
aborts, whatever ``ignore_failure`` says.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Callable

import click

from mesa.config import RunConfig
from mesa.errors import BenchmarkFailure
from mesa.stats import mean_stddev, summarize
from mesa.timing import TimedResult, run_timed

log = logging.getLogger("mesa")


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class RunProgress:
    """Progress info passed to the callback after each repetition."""

    phase: str  # "warmup" or "measure"
    iteration: int  # 1-based
    total_iterations: int
    wall_time_s: float = 0.0
    exit_code: int = 0


ProgressCallback = Callable[[RunProgress], None]


# ---------------------------------------------------------------------------
# BenchmarkResult
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkResult:
    """Timings of one benchmark invocation."""

    warmup_times: list[float] = field(default_factory=list)
    times: list[float] = field(default_factory=list)
    mean: float = 0.0
    stddev: float = 0.0


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class Runner:
    """Executes the target program according to a RunConfig.

    Usage::

        runner = Runner(config)
        result = runner.run()
    """

    def __init__(
        self,
        config: RunConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.progress: ProgressCallback = progress_callback or self._default_progress

    def run(self) -> BenchmarkResult:
        """Run the warm-up batch, then the measured batch.

        Raises:
            SpawnError: The target could not be started.
            BenchmarkFailure: The target failed and failures are not tolerated.
        """
        result = BenchmarkResult()

        if self.config.warmup:
            result.warmup_times = self.run_batch(self.config.warmup, phase="warmup")
            warm = summarize(result.warmup_times)
            log.info(
                "Warm-up: %d run(s), mean %.4fs, stddev %.4fs (not recorded)",
                warm.n,
                warm.mean,
                warm.stddev,
            )

        result.times = self.run_batch(self.config.runs, phase="measure")
        result.mean, result.stddev = mean_stddev(result.times)

        if result.times:
            measured = summarize(result.times)
            log.info(
                "Measured: %d run(s), mean %.4fs, stddev %.4fs, min %.4fs, max %.4fs",
                measured.n,
                measured.mean,
                measured.stddev,
                measured.min,
                measured.max,
            )
        else:
            log.info("No measured runs; recording zero timings.")
        return result

    def run_batch(self, count: int, *, phase: str = "measure") -> list[float]:
        """Run *count* repetitions and return their wall times in seconds.

        Nothing is returned if any repetition fails without
        ``ignore_failure``: the exception replaces the whole batch.
        """
        times: list[float] = []
        for i in range(1, count + 1):
            timed = run_timed(self.config.command, capture=self.config.verbose)

            # Echo outside the measured window.
            if self.config.verbose:
                self._echo_output(timed)

            log.debug(
                "%s %d/%d: wall %.6fs, cpu %.6fs (user %.6fs, sys %.6fs), exit %d",
                phase,
                i,
                count,
                timed.wall_time_s,
                timed.cpu_time_s,
                timed.user_time_s,
                timed.sys_time_s,
                timed.exit_code,
            )

            if not timed.ok:
                if not self.config.ignore_failure:
                    raise BenchmarkFailure(
                        f"Program exited with non-zero status {timed.exit_code} "
                        f"({phase} run {i}/{count})",
                        exit_code=timed.exit_code,
                        phase=phase,
                    )
                log.warning(
                    "Program exited with non-zero status %d (ignored)",
                    timed.exit_code,
                )

            times.append(timed.wall_time_s)
            self.progress(
                RunProgress(
                    phase=phase,
                    iteration=i,
                    total_iterations=count,
                    wall_time_s=timed.wall_time_s,
                    exit_code=timed.exit_code,
                )
            )
        return times

    @staticmethod
    def _echo_output(timed: TimedResult) -> None:
        if timed.stdout:
            click.echo(timed.stdout, nl=False, file=sys.stderr)
        if timed.stderr:
            click.echo(timed.stderr, nl=False, file=sys.stderr)

    @staticmethod
    def _default_progress(progress: RunProgress) -> None:
        """Default progress callback: log to stderr."""
        marker = "W" if progress.phase == "warmup" else "M"
        line = (
            f"  {marker}{progress.iteration}/{progress.total_iterations} "
            f"{progress.wall_time_s:10.4f}s"
        )
        if progress.exit_code:
            line += f" [exit {progress.exit_code}]"
        log.info(line)
