"""Summary statistics for a batch of timings.

Only the mean and the *population* standard deviation (divisor N, not
N - 1) are computed.  There is no outlier rejection and no confidence
interval: a record stores exactly what was measured.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Sequence


@dataclass
class Summary:
    """Descriptive numbers for one batch of durations."""

    n: int
    mean: float
    stddev: float
    min: float
    max: float


def mean_stddev(durations: Sequence[float]) -> tuple[float, float]:
    """Return ``(mean, population_stddev)`` of *durations*.

    An empty sequence yields ``(0.0, 0.0)``, which is what a dry run
    with zero measured runs records.
    """
    if not durations:
        return 0.0, 0.0
    mean = statistics.fmean(durations)
    stddev = statistics.pstdev(durations, mu=mean)
    return mean, stddev


def summarize(durations: Sequence[float]) -> Summary:
    """Compute a :class:`Summary`; all zeros for an empty batch."""
    if not durations:
        return Summary(n=0, mean=0.0, stddev=0.0, min=0.0, max=0.0)
    mean, stddev = mean_stddev(durations)
    return Summary(
        n=len(durations),
        mean=mean,
        stddev=stddev,
        min=min(durations),
        max=max(durations),
    )
