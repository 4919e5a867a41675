"""The measurable operation contract.

An operation is prepared once per dataset, then run repeatedly by the
calibration and measurement loops.  Subclasses override
``run_datum`` for independent per-record work, or ``run_dataset``
when a run needs state shared across records.
"""

from __future__ import annotations

from typing import Any, ClassVar

from zstdbench.config import BenchmarkConfig
from zstdbench.dataset import DataSet, Datum
from zstdbench.timing import Metrics


class Operation:
    """Base class for everything the harness can time.

    Lifecycle for one dataset::

        op.initialize_dataset(ds)
        op.run_dataset(ds, iters)   # many times
        op.finalize_dataset(ds)

    ``initialize_dataset`` may do arbitrarily expensive preparation and
    must be safe to call again after ``finalize_dataset``.
    """

    name: ClassVar[str] = ""

    def __init__(self, library: Any) -> None:
        self.library = library

    @classmethod
    def from_config(cls, config: BenchmarkConfig, library: Any) -> Operation:
        """Build an operation from its configuration parameters."""
        return cls(library)

    def initialize_dataset(self, dataset: DataSet) -> None:
        for datum in dataset:
            self.initialize_datum(datum)

    def finalize_dataset(self, dataset: DataSet) -> None:
        for datum in dataset:
            self.finalize_datum(datum)

    def initialize_datum(self, datum: Datum) -> None:
        pass

    def finalize_datum(self, datum: Datum) -> None:
        pass

    def run_dataset(self, dataset: DataSet, iters: int) -> Metrics:
        """Run over every datum *iters* times and sum what was measured."""
        total = Metrics.zero()
        for datum in dataset:
            total = total + self.run_datum(datum, iters)
        return total

    def run_datum(self, datum: Datum, iters: int) -> Metrics:
        return Metrics()
