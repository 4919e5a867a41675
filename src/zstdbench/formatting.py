"""Shared text formatting helpers for zstdbench.

Provides functions for formatting durations, byte counts and
percentages used in log output and rendered reports.
"""

from __future__ import annotations

import math


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration.

    Examples: ``'8s'``, ``'1m 23s'``, ``'1h 12m 34s'``. Always whole seconds
    (truncated, not rounded).
    """
    total = int(seconds)
    if total >= 3600:
        h = total // 3600
        m = (total % 3600) // 60
        s = total % 60
        return f"{h}h {m:2d}m {s:2d}s"
    if total >= 60:
        m = total // 60
        s = total % 60
        return f"{m}m {s:2d}s"
    return f"{total}s"


def format_ns(nanoseconds: int, precision: int = 2) -> str:
    """Format a nanosecond duration with adaptive units."""
    if nanoseconds < 1_000:
        return f"{nanoseconds}ns"
    if nanoseconds < 1_000_000:
        return f"{nanoseconds / 1_000:.{precision}f}µs"
    if nanoseconds < 1_000_000_000:
        return f"{nanoseconds / 1_000_000:.{precision}f}ms"
    return f"{nanoseconds / 1_000_000_000:.{precision}f}s"


def format_bytes(count: int) -> str:
    """Format a byte count: ``'512 B'``, ``'1.5 KiB'``, ``'2.0 MiB'``."""
    if count < 1024:
        return f"{count} B"
    value = count / 1024
    for unit in ("KiB", "MiB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GiB"


def format_pct(value: float, precision: int = 1) -> str:
    """Format a percentage with an explicit sign, e.g. ``'+4.2%'``."""
    if math.isnan(value):
        return "N/A"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{precision}f}%"
