"""Timing capture for benchmark runs.

Measures in-process wall-clock time with nanosecond resolution and
defines Metrics, the per-run record an operation reports.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def _add_opt(x: int | None, y: int | None) -> int | None:
    if x is None or y is None:
        return None
    return x + y


@dataclass(frozen=True)
class Metrics:
    """What one run of an operation measured.

    Any field may be ``None`` when the operation does not produce that
    dimension.  Adding two Metrics sums a field only when both sides
    have it; otherwise the sum leaves it absent rather than inventing
    a zero.
    """

    uncompressed_size: int | None = None
    compressed_size: int | None = None
    duration_ns: int | None = None

    @classmethod
    def zero(cls) -> Metrics:
        """All fields present and zero: the seed for summing datum runs."""
        return cls(uncompressed_size=0, compressed_size=0, duration_ns=0)

    def __add__(self, other: Metrics) -> Metrics:
        if not isinstance(other, Metrics):
            return NotImplemented
        return Metrics(
            uncompressed_size=_add_opt(self.uncompressed_size, other.uncompressed_size),
            compressed_size=_add_opt(self.compressed_size, other.compressed_size),
            duration_ns=_add_opt(self.duration_ns, other.duration_ns),
        )


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------


class Timer:
    """Accumulating stopwatch.  Starts running on construction."""

    def __init__(self) -> None:
        self._elapsed = 0
        self._checkpoint = time.perf_counter_ns()
        self._running = True

    def reset(self) -> None:
        """Zero the elapsed time and start again."""
        self._elapsed = 0
        self._running = False
        self.start()

    def start(self) -> None:
        if self._running:
            raise RuntimeError("Timer is already running")
        self._running = True
        self._checkpoint = time.perf_counter_ns()

    def stop(self) -> int:
        """Stop the timer and return the total elapsed nanoseconds."""
        now = time.perf_counter_ns()
        if not self._running:
            raise RuntimeError("Timer is not running")
        self._elapsed += now - self._checkpoint
        self._running = False
        return self._elapsed
