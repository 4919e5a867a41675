"""Dataset loading.

Reads the files matched by a dataset's glob patterns, turns them into
datums according to the dataset's load mode, and drops byte-identical
duplicates so every payload is measured once.
"""

from __future__ import annotations

import glob
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from zstdbench.config import DataSetConfig
from zstdbench.formatting import format_bytes
from zstdbench.logging import get_logger

log = get_logger("dataset")


class DataSetError(ValueError):
    """A dataset configuration produced no usable data."""


def fingerprint(data: bytes) -> int:
    """Return a 64-bit content fingerprint of *data*.

    Used for deduplication and stable identity, not for security.
    """
    return int.from_bytes(hashlib.blake2b(data, digest_size=8).digest(), "little")


@dataclass(frozen=True)
class Datum:
    """One input payload and its fingerprint."""

    data: bytes = field(repr=False)
    id: int

    @classmethod
    def from_bytes(cls, data: bytes) -> Datum:
        return cls(data, fingerprint(data))

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DataSet:
    """A named, ordered collection of unique datums."""

    name: str
    data: tuple[Datum, ...]

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[Datum]:
        return iter(self.data)

    @property
    def fingerprints(self) -> list[int]:
        return [d.id for d in self.data]

    @property
    def total_bytes(self) -> int:
        return sum(len(d) for d in self.data)


def _expand(patterns: list[str]) -> list[Path]:
    paths: list[Path] = []
    for pattern in patterns:
        matches = sorted(glob.glob(pattern, recursive=True))
        files = [Path(m) for m in matches if Path(m).is_file()]
        if not files:
            log.warning("Pattern %r matched no files", pattern)
        paths.extend(files)
    return paths


def _cut(blobs: list[bytes], size: int) -> list[bytes]:
    return [blob[i : i + size] for blob in blobs for i in range(0, len(blob), size)]


def load_dataset(config: DataSetConfig) -> DataSet:
    """Load a DataSet from its configuration.

    Raises:
        DataSetError: If no file was read, or if nothing is left after
            applying the load mode and deduplication.
    """
    files = _expand(config.globs)
    if not files:
        raise DataSetError(f"Dataset '{config.name}': no files matched {config.globs}")

    blobs = [f.read_bytes() for f in files]

    if config.mode.kind == "concatenate":
        payloads = [b"".join(blobs)]
    elif config.mode.kind == "cut":
        payloads = _cut(blobs, config.mode.chunk_size)
    else:
        payloads = blobs

    seen: set[int] = set()
    data: list[Datum] = []
    for payload in payloads:
        datum = Datum.from_bytes(payload)
        if datum.id in seen:
            continue
        seen.add(datum.id)
        data.append(datum)

    if not data:
        raise DataSetError(f"Dataset '{config.name}' is empty after loading")

    dataset = DataSet(name=config.name, data=tuple(data))
    log.info(
        "Loaded dataset '%s': %d files -> %d datums (%s, mode %s)",
        config.name,
        len(files),
        len(dataset),
        format_bytes(dataset.total_bytes),
        config.mode,
    )
    return dataset


def load_datasets(configs: list[DataSetConfig]) -> list[DataSet]:
    """Load every configured dataset, in declaration order."""
    return [load_dataset(c) for c in configs]
