"""Shared text formatting helpers for mesa."""

from __future__ import annotations


def format_duration(seconds: float) -> str:
    """Format seconds as a compact human-readable duration.

    Examples: ``'8s'``, ``'1m 23s'``, ``'1h 12m'``, ``'3d 4h'``.  Always
    whole seconds (truncated, not rounded); the two largest units only.
    """
    total = max(int(seconds), 0)
    if total >= 86400:
        d = total // 86400
        h = (total % 86400) // 3600
        return f"{d}d {h}h"
    if total >= 3600:
        h = total // 3600
        m = (total % 3600) // 60
        return f"{h}h {m}m"
    if total >= 60:
        m = total // 60
        s = total % 60
        return f"{m}m {s}s"
    return f"{total}s"


def format_age(timestamp: int, now: int) -> str:
    """Describe how long ago *timestamp* was, relative to *now*."""
    if timestamp >= now:
        return "now"
    return f"{format_duration(now - timestamp)} ago"
