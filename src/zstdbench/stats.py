"""Summary statistics for benchmark timing samples.

All values are integer nanoseconds; the mean and the standard
deviation are truncated.  The standard deviation is the population
form (divide by n).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class Statistic:
    """Summary of one non-empty sample of unsigned integers."""

    min: int
    max: int
    mean: int
    median: int
    std_dev: int

    def to_dict(self) -> dict[str, int]:
        """Serialize to a JSON-compatible dict."""
        return {
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "std_dev": self.std_dev,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Statistic:
        return cls(
            min=int(data["min"]),
            max=int(data["max"]),
            mean=int(data["mean"]),
            median=int(data["median"]),
            std_dev=int(data["std_dev"]),
        )


def median(samples: Sequence[int]) -> int:
    """Median of *samples*; the floor average of the middle pair for even n."""
    ordered = sorted(samples)
    n = len(ordered)
    mid = n // 2
    if n % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) // 2


def compute_statistic(samples: Sequence[int]) -> Statistic:
    """Summarize *samples* into a Statistic.

    Raises:
        ValueError: If *samples* is empty or contains a negative value.
    """
    if not samples:
        raise ValueError("Cannot summarize an empty sample")
    if any(s < 0 for s in samples):
        raise ValueError("Samples must be unsigned")

    n = len(samples)
    mean = sum(samples) // n
    variance = sum((s - mean) ** 2 for s in samples) // n
    return Statistic(
        min=min(samples),
        max=max(samples),
        mean=mean,
        median=median(samples),
        std_dev=math.isqrt(variance),
    )


# ---------------------------------------------------------------------------
# Derived throughput
# ---------------------------------------------------------------------------


def speed_mbps(num_bytes: int | None, duration_ns: int) -> float | None:
    """Throughput in MB/s (bytes per microsecond)."""
    if num_bytes is None or duration_ns <= 0:
        return None
    return 1000.0 * num_bytes / duration_ns


def speed_stddev_mbps(num_bytes: int | None, mean_ns: int, std_dev_ns: int) -> float | None:
    """Standard deviation of throughput, propagated from the duration's.

    Speed is ``k / d``; to first order its deviation is
    ``k * sigma_d / mean_d**2``, i.e. the relative deviation of the
    duration carried over to the speed at the mean.
    """
    mean_speed = speed_mbps(num_bytes, mean_ns)
    if mean_speed is None:
        return None
    return mean_speed * std_dev_ns / mean_ns
