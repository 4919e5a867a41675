"""Report rows and cross-revision comparison.

Each BenchmarkResult is flattened into a Row of display values.  A
comparison picks one key (e.g. ``revision``) and a baseline value for
it: rows that agree on every key listed before it are merged into one
row, and every key listed after it becomes a Comparison holding one
value per group member, baseline first.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from zstdbench.logging import get_logger
from zstdbench.results import BenchmarkResult
from zstdbench.stats import speed_mbps, speed_stddev_mbps

log = get_logger("compare")


class ReportError(ValueError):
    """A report request cannot be satisfied by the results."""


@dataclass
class Comparison:
    """Values of one key across the members of a comparison group."""

    entries: list[tuple[str, Any]] = field(default_factory=list)

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.entries]

    @property
    def values(self) -> list[Any]:
        return [value for _, value in self.entries]


@dataclass(frozen=True)
class Baseline:
    """Which key to compare across and which of its values is the baseline."""

    key: str
    value: str

    @classmethod
    def parse(cls, spec: str) -> Baseline:
        """Parse ``KEY=VALUE``, e.g. ``revision=dev``."""
        key, sep, value = spec.partition("=")
        if not sep or not key or not value:
            raise ReportError(f"Comparison must look like KEY=BASELINE, got {spec!r}")
        return cls(key.strip(), value.strip())


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

TITLE_OVERRIDES = {
    "speed_mbps": "Speed MB/s",
    "cc": "Compiler",
    "cc_version": "Compiler Version",
    "cflags": "Compiler Flags",
}


def is_result_key(key: str) -> bool:
    """Whether *key* is a measured quantity (deltas make sense) or a label."""
    return (
        key == "ratio"
        or key.endswith("bytes")
        or key.startswith("duration_ns")
        or key.startswith("speed_mbps")
    )


def is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class Row:
    """One report line: display values by key, plus title overrides."""

    values: dict[str, Any]
    titles: dict[str, str] = field(default_factory=lambda: dict(TITLE_OVERRIDES))

    def get(self, key: str) -> Any:
        try:
            return self.values[key]
        except KeyError:
            raise ReportError(
                f"Unknown key '{key}'. Known: {', '.join(sorted(self.values))}"
            ) from None

    def title(self, key: str) -> str:
        """Column title: the override, else snake_case as Title Case."""
        if key in self.titles:
            return self.titles[key]
        return " ".join(word[:1].upper() + word[1:] for word in key.split("_"))

    def copy(self) -> Row:
        return Row(dict(self.values), dict(self.titles))


def row_from_result(result: BenchmarkResult) -> Row:
    """Flatten *result* into report values."""
    duration = result.duration_ns
    uncompressed = result.uncompressed_bytes
    compressed = result.compressed_bytes
    ratio = None
    if uncompressed is not None and compressed:
        ratio = uncompressed / compressed

    values: dict[str, Any] = {
        "commit": result.commit[:10],
        "revision": result.revision,
        "tag": result.tag,
        "branch": result.branch,
        "commit_timestamp": result.commit_timestamp,
        "cc": result.cc,
        "cc_version": result.cc_version,
        "cflags": result.cflags,
        "command_prefix": " ".join(result.command_prefix),
        "benchmark": result.benchmark,
        "config": result.config,
        "dataset": result.dataset,
        "iters_per_run": result.iters_per_run,
        "runs": result.runs,
        "uncompressed_bytes": uncompressed,
        "compressed_bytes": compressed,
        "duration_ns": duration.mean,
        "duration_ns_min": duration.min,
        "duration_ns_max": duration.max,
        "duration_ns_median": duration.median,
        "duration_ns_stddev": duration.std_dev,
        "ratio": ratio,
        "speed_mbps": speed_mbps(uncompressed, duration.mean),
        # Fastest run is the shortest duration.
        "speed_mbps_min": speed_mbps(uncompressed, duration.max),
        "speed_mbps_max": speed_mbps(uncompressed, duration.min),
        "speed_mbps_median": speed_mbps(uncompressed, duration.median),
        "speed_mbps_stddev": speed_stddev_mbps(uncompressed, duration.mean, duration.std_dev),
    }
    return Row(values)


# ---------------------------------------------------------------------------
# Ordering and grouping
# ---------------------------------------------------------------------------

# Mixed-type columns order strings, then integers, then floats, then missing.
_TYPE_RANK = {str: 0, int: 1, float: 2}


def _sort_value(value: Any) -> tuple[int, Any]:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return (4, 0)
    if isinstance(value, Comparison):
        return (3, 0)
    rank = _TYPE_RANK.get(type(value))
    if rank is None:
        return (0, str(value))
    return (rank, value)


def sort_rows(rows: Sequence[Row], keys: Sequence[str]) -> list[Row]:
    """Stable sort of *rows* by the values of *keys*, in priority order."""
    return sorted(rows, key=lambda row: [_sort_value(row.get(k)) for k in keys])


def display_value(value: Any) -> str:
    """Render a scalar cell: floats with two decimals, missing as ``N/A``."""
    if value is None:
        return "N/A"
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, Comparison):
        raise ReportError("A comparison has no single display value")
    return str(value)


def compare_rows(rows: Sequence[Row], keys: Sequence[str], baseline: Baseline) -> list[Row]:
    """Merge *rows* into one row per comparison group.

    Rows are sorted by *keys* and grouped on the keys preceding
    ``baseline.key``.  Within a group the member whose ``baseline.key``
    value is ``baseline.value`` comes first.  Every key after
    ``baseline.key`` is replaced by a Comparison of the members' values.

    Raises:
        ReportError: If the comparison key is not among *keys*, or the
            groups do not all have the same members.
    """
    if baseline.key not in keys:
        raise ReportError(
            f"Comparison key '{baseline.key}' must be one of the keys: {', '.join(keys)}"
        )
    index = list(keys).index(baseline.key)
    prefix = list(keys[:index])
    suffix = list(keys[index + 1 :])

    out: list[Row] = []
    expected_labels: list[str] | None = None
    ordered = sort_rows(rows, keys)
    for group_key, group in itertools.groupby(
        ordered, key=lambda row: tuple(_sort_value(row.get(k)) for k in prefix)
    ):
        members = list(group)
        labels = [display_value(m.get(baseline.key)) for m in members]
        if baseline.value in labels:
            first = labels.index(baseline.value)
            members.insert(0, members.pop(first))
            labels.insert(0, labels.pop(first))
        else:
            log.warning(
                "No '%s=%s' row in group %s; comparing against '%s'",
                baseline.key,
                baseline.value,
                ", ".join(display_value(members[0].get(k)) for k in prefix) or "(all)",
                labels[0],
            )

        if expected_labels is None:
            expected_labels = labels
        elif labels != expected_labels:
            raise ReportError(
                f"Comparison groups differ: {', '.join(expected_labels)} "
                f"vs {', '.join(labels)}"
            )

        merged = members[0].copy()
        for key in suffix:
            merged.values[key] = Comparison(
                [(label, member.get(key)) for label, member in zip(labels, members)]
            )
        out.append(merged)
    return out


def is_null_comparison(rows: Sequence[Row], key: str) -> bool:
    """True when every member of every group has the same value for *key*."""
    for row in rows:
        values = row.get(key).values
        if any(v != values[0] for v in values[1:]):
            return False
    return True


def diff(baseline: Any, value: Any) -> float:
    """Relative change ``(value - baseline) / baseline``.

    Returns NaN when either side is missing or the baseline is zero.

    Raises:
        ReportError: If the values are non-numeric or of differing types.
    """
    if baseline is None or value is None:
        return math.nan
    if not (is_numeric(baseline) and is_numeric(value)) or type(baseline) is not type(value):
        raise ReportError(
            f"Cannot diff {baseline!r} and {value!r}: values must be numbers of the same type"
        )
    if baseline == 0:
        return math.nan
    return (value - baseline) / baseline
