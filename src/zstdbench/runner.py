"""Benchmark measurement for one compiled revision.

Runs inside the child process spawned per revision:
1. Load every configured dataset once
2. For each benchmark, configuration variant and allowed dataset:
   prepare, calibrate, time the runs, summarize
3. Append the results to the primary output and the archive
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from zstdbench.calibrate import compute_iters_and_runs
from zstdbench.config import SessionConfig
from zstdbench.dataset import DataSet, load_datasets
from zstdbench.formatting import format_duration, format_ns
from zstdbench.logging import get_logger
from zstdbench.operations import OperationFactory, get_factory
from zstdbench.operations.base import Operation
from zstdbench.results import BenchmarkResult, BuildInfo, append_results
from zstdbench.stats import compute_statistic

log = get_logger("runner")


class MeasurementError(RuntimeError):
    """Runs of the same plan disagreed on what they processed."""


def _label(benchmark: str, config_name: str | None, dataset: str) -> str:
    parts = [benchmark] + ([config_name] if config_name else []) + [dataset]
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Single benchmark
# ---------------------------------------------------------------------------


def run_benchmark(
    session: SessionConfig,
    build: BuildInfo,
    benchmark: str,
    config_name: str | None,
    operation: Operation,
    dataset: DataSet,
) -> BenchmarkResult:
    """Measure *operation* on *dataset* and summarize the runs.

    Raises:
        CalibrationError: If no iteration plan can be derived.
        MeasurementError: If two runs report different byte counts.
    """
    log.info("%s", _label(benchmark, config_name, dataset.name))
    operation.initialize_dataset(dataset)
    try:
        iters, runs = compute_iters_and_runs(session, operation, dataset)
        log.info("%d runs @ %d iters/run", runs, iters)

        durations: list[int] = []
        uncompressed: int | None = None
        compressed: int | None = None
        for run in range(runs):
            metrics = operation.run_dataset(dataset, iters)
            if metrics.duration_ns is None:
                raise MeasurementError(
                    f"{_label(benchmark, config_name, dataset.name)}: run {run + 1} "
                    "reported no duration"
                )
            if run == 0:
                uncompressed = metrics.uncompressed_size
                compressed = metrics.compressed_size
            elif (metrics.uncompressed_size, metrics.compressed_size) != (
                uncompressed,
                compressed,
            ):
                raise MeasurementError(
                    f"{_label(benchmark, config_name, dataset.name)}: run {run + 1} "
                    f"processed {metrics.uncompressed_size}/{metrics.compressed_size} bytes, "
                    f"run 1 processed {uncompressed}/{compressed}"
                )
            durations.append(metrics.duration_ns)
    finally:
        operation.finalize_dataset(dataset)

    stat = compute_statistic(durations)
    log.debug("mean %s, std dev %s", format_ns(stat.mean), format_ns(stat.std_dev))
    return BenchmarkResult(
        commit=build.commit,
        revision=build.revision,
        tag=build.tag,
        branch=build.branch,
        commit_timestamp=build.commit_timestamp,
        cc=build.cc,
        cc_version=build.cc_version,
        cflags=build.cflags,
        command_prefix=list(session.command_prefix),
        benchmark=benchmark,
        config=config_name,
        dataset=dataset.name,
        iters_per_run=iters,
        runs=runs,
        uncompressed_bytes=uncompressed,
        compressed_bytes=compressed,
        duration_ns=stat,
    )


# ---------------------------------------------------------------------------
# Whole session for one build
# ---------------------------------------------------------------------------


def run_all_benchmarks(
    session: SessionConfig,
    build: BuildInfo,
    registry: dict[str, OperationFactory],
    library: Any,
) -> list[BenchmarkResult]:
    """Run every configured benchmark against *library*.

    Datasets are loaded once.  Each configuration variant gets its own
    operation instance, shared across the datasets it allows.
    """
    datasets = load_datasets(session.datasets)
    results: list[BenchmarkResult] = []
    start = time.monotonic()

    for name in session.benchmarks:
        factory = get_factory(registry, name)
        for config_name, bm_config in session.configs_for_benchmark(name):
            operation = factory(bm_config, library)
            for dataset in datasets:
                if not bm_config.allows(dataset.name):
                    log.debug("Skipping %s", _label(name, config_name, dataset.name))
                    continue
                results.append(
                    run_benchmark(session, build, name, config_name, operation, dataset)
                )

    log.info(
        "Measured %d benchmarks for %s in %s",
        len(results),
        build.revision,
        format_duration(time.monotonic() - start),
    )
    return results


def measure(
    session: SessionConfig,
    build: BuildInfo,
    registry: dict[str, OperationFactory],
    library: Any,
    output: Path,
    archive: Path | None = None,
) -> list[BenchmarkResult]:
    """Run all benchmarks and append the results to both stores."""
    results = run_all_benchmarks(session, build, registry, library)
    append_results(output, results)
    if archive is not None:
        append_results(archive, results)
    return results
