"""Adaptive calibration of iterations per run and number of runs.

Starting from the configured floor, the iteration count grows tenfold
while a run is far below the per-run target, then gets one final
proportional bump.  The number of runs is whatever fills the total time
budget at that per-run duration, never fewer than ``min_runs``.
"""

from __future__ import annotations

from zstdbench.config import SessionConfig
from zstdbench.dataset import DataSet
from zstdbench.formatting import format_ns
from zstdbench.logging import get_logger
from zstdbench.operations.base import Operation

log = get_logger("calibrate")


class CalibrationError(RuntimeError):
    """Calibration could not derive a usable iteration plan."""


def compute_iters_and_runs(
    session: SessionConfig,
    operation: Operation,
    dataset: DataSet,
) -> tuple[int, int]:
    """Choose ``(iters_per_run, runs)`` for *operation* on *dataset*.

    The dataset must already be initialized for the operation.

    Raises:
        CalibrationError: If a trial run reports no duration or the
            resulting plan violates the configured floors.
    """
    target_run = session.target_run_ns
    target_total = session.target_total_ns

    iters = session.min_iters_per_run
    while True:
        duration = operation.run_dataset(dataset, iters).duration_ns
        if not duration:
            raise CalibrationError(
                f"{operation.name} on {dataset.name}: trial run at {iters} iters "
                "reported no duration"
            )
        log.debug("Trial: %d iters took %s", iters, format_ns(duration))
        if duration < target_run // 10:
            iters *= 10
            continue
        if duration < target_run:
            mult = max(target_run // duration, 2)
            iters *= mult
            duration *= mult
        break

    runs = target_total // duration if duration < target_total else 1
    runs = max(runs, session.min_runs)

    if iters < session.min_iters_per_run or iters <= 0:
        raise CalibrationError(f"Calibrated iters {iters} below the configured floor")
    if runs < 1 or runs < session.min_runs:
        raise CalibrationError(f"Calibrated runs {runs} below the configured floor")

    log.debug(
        "Calibrated %s on %s: %d runs @ %d iters/run", operation.name, dataset.name, runs, iters
    )
    return iters, runs
