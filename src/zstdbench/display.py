"""Table rendering for benchmark reports.

Formats::

    markdown     | Title | Title |  with a |-----|-----| rule
    pretty       space-separated aligned columns with a dashed rule
    csv, tsv     plain separated values, no padding
    pretty-csv   ", " separated, padded to align
    pretty-tsv   tab separated, padded to align

Numbers are right-aligned, text left-aligned, titles centered.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Sequence

from zstdbench.compare import (
    Baseline,
    Comparison,
    Row,
    compare_rows,
    diff,
    display_value,
    is_null_comparison,
    is_numeric,
    is_result_key,
    row_from_result,
    sort_rows,
)
from zstdbench.formatting import format_pct
from zstdbench.results import BenchmarkResult

DEFAULT_KEYS = (
    "benchmark",
    "config",
    "dataset",
    "cc",
    "revision",
    "commit",
    "speed_mbps",
    "ratio",
)


class Format(enum.Enum):
    MARKDOWN = "markdown"
    PRETTY = "pretty"
    CSV = "csv"
    TSV = "tsv"
    PRETTY_CSV = "pretty-csv"
    PRETTY_TSV = "pretty-tsv"

    @classmethod
    def parse(cls, name: str) -> Format:
        try:
            return cls(name.lower())
        except ValueError:
            known = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown format '{name}'. Known: {known}") from None

    @property
    def padded(self) -> bool:
        return self not in (Format.CSV, Format.TSV)

    @property
    def has_rule(self) -> bool:
        return self in (Format.MARKDOWN, Format.PRETTY)

    @property
    def separator(self) -> str:
        return _SEPARATORS[self]


_SEPARATORS = {
    Format.MARKDOWN: " | ",
    Format.PRETTY: " ",
    Format.CSV: ",",
    Format.TSV: "\t",
    Format.PRETTY_CSV: ", ",
    Format.PRETTY_TSV: "\t",
}


@dataclass
class Column:
    title: str
    cells: list[str]
    right_align: bool = False

    @property
    def width(self) -> int:
        return max([len(self.title)] + [len(c) for c in self.cells])


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def _columns_for_key(rows: Sequence[Row], key: str) -> list[Column]:
    first = rows[0].get(key)
    title = rows[0].title(key)

    if not isinstance(first, Comparison):
        return [Column(title, [display_value(r.get(key)) for r in rows], is_numeric(first))]

    if is_null_comparison(rows, key):
        return [
            Column(
                title,
                [display_value(r.get(key).values[0]) for r in rows],
                is_numeric(first.values[0]),
            )
        ]

    columns: list[Column] = []
    base_label = first.labels[0]
    numeric = is_numeric(first.values[0])
    for i, label in enumerate(first.labels):
        columns.append(
            Column(
                f"{title} ({label})",
                [display_value(r.get(key).values[i]) for r in rows],
                numeric,
            )
        )
        if i and numeric and is_result_key(key):
            deltas = [
                format_pct(100.0 * diff(r.get(key).values[0], r.get(key).values[i]))
                for r in rows
            ]
            columns.append(Column(f"{title} ({label} - {base_label})", deltas, True))
    return columns


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def _pad(text: str, width: int, fmt: Format, how: str) -> str:
    if not fmt.padded:
        return text
    padding = width - len(text)
    if how == "right":
        return " " * padding + text
    if how == "center":
        left = padding // 2
        return " " * left + text + " " * (padding - left)
    return text + " " * padding


def _line(cells: list[str], fmt: Format) -> str:
    body = fmt.separator.join(cells)
    if fmt is Format.MARKDOWN:
        return f"| {body} |"
    return body


def _rule(widths: list[int], fmt: Format) -> str:
    dashes = ["-" * w for w in widths]
    if fmt is Format.MARKDOWN:
        return "|-" + "-|-".join(dashes) + "-|"
    return " ".join(dashes)


def format_table(columns: Sequence[Column], fmt: Format) -> str:
    """Lay out *columns* as text in *fmt*."""
    if not columns:
        return ""
    widths = [c.width for c in columns]
    lines = [_line([_pad(c.title, w, fmt, "center") for c, w in zip(columns, widths)], fmt)]
    if fmt.has_rule:
        lines.append(_rule(widths, fmt))
    for i in range(len(columns[0].cells)):
        cells = [
            _pad(c.cells[i], w, fmt, "right" if c.right_align else "left")
            for c, w in zip(columns, widths)
        ]
        lines.append(_line(cells, fmt))
    return "\n".join(lines)


def render_rows(
    rows: Sequence[Row],
    keys: Sequence[str],
    baseline: Baseline | None = None,
    fmt: Format = Format.PRETTY,
) -> str:
    """Sort or compare *rows* and render them as one table."""
    if not rows:
        return ""
    for key in keys:
        rows[0].get(key)  # unknown keys fail here
    if baseline is not None:
        rows = compare_rows(rows, keys, baseline)
    else:
        rows = sort_rows(rows, keys)

    columns: list[Column] = []
    for key in keys:
        if baseline is not None and key == baseline.key:
            continue
        columns.extend(_columns_for_key(rows, key))
    return format_table(columns, fmt)


def render(
    results: Sequence[BenchmarkResult],
    keys: Sequence[str] = DEFAULT_KEYS,
    comparison: Baseline | None = None,
    fmt: Format = Format.PRETTY,
) -> str:
    """Render *results* as a report table.

    Args:
        results: Results to show, in any order.
        keys: Columns, also the sort priority.
        comparison: Compare across ``comparison.key`` against its
            baseline value instead of listing every row.
        fmt: Output format.

    Raises:
        ReportError: On unknown keys, a comparison key missing from
            *keys*, or values that cannot be diffed.
    """
    return render_rows([row_from_result(r) for r in results], keys, comparison, fmt)

