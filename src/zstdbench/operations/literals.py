"""Literals section benchmarks.

Both operations compress every datum once during preparation, walk the
resulting frames' literals sections, and then time only the literals
codec: Huffman table building plus entropy coding for compression,
table reading plus decoding for decompression.

An optional quantization bucket restricts the measurement to sections
whose compressed/decompressed size ratio falls in one of ``buckets``
equal-width ranges over [0, 1], e.g. ``bucket: 9`` with the default ten
buckets keeps only sections that barely compress.
"""

from __future__ import annotations

from typing import Any

from zstdbench.bindings import LiteralsBlock
from zstdbench.config import BenchmarkConfig
from zstdbench.dataset import DataSet, DataSetError
from zstdbench.logging import get_logger
from zstdbench.operations.base import Operation
from zstdbench.operations.compress import compression_level
from zstdbench.timing import Metrics, Timer

log = get_logger("operations.literals")

DEFAULT_BUCKETS = 10


def ratio_bucket(block: LiteralsBlock, buckets: int) -> int:
    """The bucket index of *block*'s compressed/decompressed size ratio."""
    if not block.decompressed:
        return buckets - 1
    ratio = len(block.compressed) / len(block.decompressed)
    return min(int(ratio * buckets), buckets - 1)


class _LiteralsOperation(Operation):
    def __init__(
        self,
        library: Any,
        level: int = 0,
        bucket: int | None = None,
        buckets: int = DEFAULT_BUCKETS,
    ) -> None:
        super().__init__(library)
        if buckets <= 0:
            raise ValueError(f"buckets must be positive (got {buckets})")
        if bucket is not None and not 0 <= bucket < buckets:
            raise ValueError(f"bucket must be in [0, {buckets}) (got {bucket})")
        self.level = level
        self.bucket = bucket
        self.buckets = buckets
        self._blocks: list[LiteralsBlock] = []

    @classmethod
    def from_config(cls, config: BenchmarkConfig, library: Any) -> _LiteralsOperation:
        return cls(
            library,
            level=compression_level(config),
            bucket=config.get_int("bucket"),
            buckets=config.get_int("buckets", DEFAULT_BUCKETS) or DEFAULT_BUCKETS,
        )

    def _selects(self, block: LiteralsBlock) -> bool:
        return self.bucket is None or ratio_bucket(block, self.buckets) == self.bucket

    def initialize_dataset(self, dataset: DataSet) -> None:
        log.info("Collecting literals sections of %s...", dataset.name)
        self._blocks = []
        total = 0
        for datum in dataset:
            frame = self.library.compress(datum.data, self.level)
            for block in self.library.iter_literals_blocks(frame):
                total += 1
                if self._selects(block):
                    self._blocks.append(block)

        if not self._blocks:
            if self.bucket is not None:
                raise DataSetError(
                    f"Dataset '{dataset.name}': bucket {self.bucket}/{self.buckets} "
                    f"selects none of {total} literals sections"
                )
            raise DataSetError(f"Dataset '{dataset.name}' produced no literals sections")
        log.info("Selected %d of %d literals sections", len(self._blocks), total)

    def finalize_dataset(self, dataset: DataSet) -> None:
        self._blocks = []


class CompressLiteralsOperation(_LiteralsOperation):
    """Re-compress the decompressed literals of each section."""

    name = "compress_literals"

    def run_dataset(self, dataset: DataSet, iters: int) -> Metrics:
        literals = [block.decompressed for block in self._blocks]
        decompressed = 0
        compressed = 0
        with self.library.literals_compressor() as compressor:
            timer = Timer()
            for _ in range(iters):
                for lits in literals:
                    decompressed += len(lits)
                    compressed += compressor.compress(lits)
            duration = timer.stop()
        return Metrics(
            uncompressed_size=decompressed,
            compressed_size=compressed,
            duration_ns=duration,
        )


class DecompressLiteralsOperation(_LiteralsOperation):
    """Decode each compressed literals section."""

    name = "decompress_literals"

    def run_dataset(self, dataset: DataSet, iters: int) -> Metrics:
        sections = [block.compressed for block in self._blocks]
        decompressed = 0
        compressed = 0
        with self.library.literals_decompressor() as decompressor:
            timer = Timer()
            for _ in range(iters):
                for section in sections:
                    compressed += len(section)
                    decompressed += decompressor.decompress(section)
            duration = timer.stop()
        return Metrics(
            uncompressed_size=decompressed,
            compressed_size=compressed,
            duration_ns=duration,
        )
