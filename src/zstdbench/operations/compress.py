"""Whole-frame compression and decompression benchmarks."""

from __future__ import annotations

import ctypes
from typing import Any

from zstdbench.config import BenchmarkConfig
from zstdbench.dataset import DataSet, Datum
from zstdbench.logging import get_logger
from zstdbench.operations.base import Operation
from zstdbench.timing import Metrics, Timer

log = get_logger("operations.compress")


def compression_level(config: BenchmarkConfig) -> int:
    """The ``level`` parameter; 0 selects libzstd's default level."""
    return config.get_int("level") or 0


class CompressOperation(Operation):
    """Compress each datum into a reused output buffer."""

    name = "compress"

    def __init__(self, library: Any, level: int = 0) -> None:
        super().__init__(library)
        self.level = level
        self._out: ctypes.Array[ctypes.c_char] | None = None

    @classmethod
    def from_config(cls, config: BenchmarkConfig, library: Any) -> CompressOperation:
        return cls(library, level=compression_level(config))

    def _buffer(self, size: int) -> ctypes.Array[ctypes.c_char]:
        bound = self.library.compress_bound(size)
        if self._out is None or len(self._out) < bound:
            self._out = ctypes.create_string_buffer(bound)
        return self._out

    def run_datum(self, datum: Datum, iters: int) -> Metrics:
        out = self._buffer(len(datum))
        data = datum.data
        compressed = 0
        timer = Timer()
        for _ in range(iters):
            compressed += self.library.compress_into(out, data, self.level)
        duration = timer.stop()
        return Metrics(
            uncompressed_size=len(datum) * iters,
            compressed_size=compressed,
            duration_ns=duration,
        )

    def finalize_dataset(self, dataset: DataSet) -> None:
        self._out = None


class DecompressOperation(Operation):
    """Decompress frames compressed once up front."""

    name = "decompress"

    def __init__(self, library: Any, level: int = 0) -> None:
        super().__init__(library)
        self.level = level
        self._frames: list[bytes] = []
        self._out: ctypes.Array[ctypes.c_char] | None = None

    @classmethod
    def from_config(cls, config: BenchmarkConfig, library: Any) -> DecompressOperation:
        return cls(library, level=compression_level(config))

    def initialize_dataset(self, dataset: DataSet) -> None:
        self._frames = [self.library.compress(datum.data, self.level) for datum in dataset]
        largest = max(len(datum) for datum in dataset)
        self._out = ctypes.create_string_buffer(max(largest, 1))
        log.debug("Prepared %d frames for %s", len(self._frames), dataset.name)

    def run_dataset(self, dataset: DataSet, iters: int) -> Metrics:
        assert self._out is not None, "initialize_dataset() was not called"
        out = self._out
        decompressed = 0
        compressed = 0
        timer = Timer()
        for _ in range(iters):
            for frame in self._frames:
                decompressed += self.library.decompress_into(out, frame)
                compressed += len(frame)
        duration = timer.stop()
        return Metrics(
            uncompressed_size=decompressed,
            compressed_size=compressed,
            duration_ns=duration,
        )

    def finalize_dataset(self, dataset: DataSet) -> None:
        self._frames = []
        self._out = None
