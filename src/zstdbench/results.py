"""Benchmark result records and their on-disk stores.

Files produced::

    build_info.json   BuildInfo for one compiled revision
    results.jsonl     one BenchmarkResult per line (primary output)
    archive.jsonl     same format, appended to across sessions
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from zstdbench.logging import get_logger
from zstdbench.stats import Statistic

log = get_logger("results")


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
    return {k: v for k, v in data.items() if k in known}


# ---------------------------------------------------------------------------
# Build identity
# ---------------------------------------------------------------------------


@dataclass
class BuildInfo:
    """Identity of one compiled library revision."""

    revision: str
    commit: str
    tag: str | None = None
    branch: str | None = None
    commit_timestamp: int | None = None  # Unix seconds
    cc: str = "cc"
    cc_version: str | None = None
    cflags: str = ""
    shim_hash: str = ""
    library_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "revision": self.revision,
            "commit": self.commit,
            "tag": self.tag,
            "branch": self.branch,
            "commit_timestamp": self.commit_timestamp,
            "cc": self.cc,
            "cc_version": self.cc_version,
            "cflags": self.cflags,
            "shim_hash": self.shim_hash,
            "library_path": self.library_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildInfo:
        """Deserialize from a dict, ignoring unknown fields."""
        return cls(**_known_fields(cls, data))


def save_build_info(path: Path, info: BuildInfo) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(info.to_dict(), indent=2) + "\n")
    log.debug("Wrote %s", path)


def load_build_info(path: Path) -> BuildInfo:
    """Read a build_info.json file.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"Build info not found: {path}")
    return BuildInfo.from_dict(json.loads(path.read_text()))


# ---------------------------------------------------------------------------
# Benchmark result
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkResult:
    """One measured (revision, benchmark configuration, dataset) triple."""

    commit: str
    revision: str
    benchmark: str
    dataset: str
    iters_per_run: int
    runs: int
    duration_ns: Statistic
    config: str | None = None
    tag: str | None = None
    branch: str | None = None
    commit_timestamp: int | None = None
    cc: str = "cc"
    cc_version: str | None = None
    cflags: str = ""
    command_prefix: list[str] = field(default_factory=list)
    uncompressed_bytes: int | None = None
    compressed_bytes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "commit": self.commit,
            "revision": self.revision,
            "tag": self.tag,
            "branch": self.branch,
            "commit_timestamp": self.commit_timestamp,
            "cc": self.cc,
            "cc_version": self.cc_version,
            "cflags": self.cflags,
            "command_prefix": self.command_prefix,
            "benchmark": self.benchmark,
            "config": self.config,
            "dataset": self.dataset,
            "iters_per_run": self.iters_per_run,
            "runs": self.runs,
            "uncompressed_bytes": self.uncompressed_bytes,
            "compressed_bytes": self.compressed_bytes,
            "duration_ns": self.duration_ns.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkResult:
        """Deserialize from a dict, ignoring unknown fields."""
        filtered = _known_fields(cls, data)
        filtered["duration_ns"] = Statistic.from_dict(data["duration_ns"])
        filtered["command_prefix"] = list(data.get("command_prefix") or [])
        return cls(**filtered)

    def to_jsonl_line(self) -> str:
        """Serialize to a single JSONL line."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_jsonl_line(cls, line: str) -> BenchmarkResult:
        """Deserialize from a single JSONL line."""
        return cls.from_dict(json.loads(line))


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def append_results(path: Path, results: Iterable[BenchmarkResult]) -> int:
    """Append *results* to the JSONL store at *path*; return how many."""
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, "a") as f:
        for result in results:
            f.write(result.to_jsonl_line() + "\n")
            count += 1
    log.debug("Appended %d results to %s", count, path)
    return count


def load_results(path: Path) -> list[BenchmarkResult]:
    """Read every result from *path*.  A missing file holds no results."""
    results: list[BenchmarkResult] = []
    if not path.exists():
        return results
    for lineno, line in enumerate(path.read_text().splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            results.append(BenchmarkResult.from_jsonl_line(line))
        except (ValueError, KeyError, TypeError) as exc:
            raise ValueError(f"{path}:{lineno}: malformed result: {exc}") from exc
    return results


def truncate_results(path: Path) -> None:
    """Empty the store at *path*, creating it if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
