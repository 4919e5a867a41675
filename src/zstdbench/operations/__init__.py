"""Benchmarkable operations and the name -> factory registry.

The registry is built by ``default_registry()`` and handed to the
measurement entry point; nothing registers itself at import time.
"""

from __future__ import annotations

from typing import Any, Callable

from zstdbench.config import BenchmarkConfig
from zstdbench.operations.base import Operation
from zstdbench.operations.compress import CompressOperation, DecompressOperation
from zstdbench.operations.literals import (
    CompressLiteralsOperation,
    DecompressLiteralsOperation,
)

OperationFactory = Callable[[BenchmarkConfig, Any], Operation]

__all__ = [
    "CompressLiteralsOperation",
    "CompressOperation",
    "DecompressLiteralsOperation",
    "DecompressOperation",
    "Operation",
    "OperationFactory",
    "default_registry",
    "get_factory",
]


def default_registry() -> dict[str, OperationFactory]:
    """Map every built-in operation name to its constructor."""
    registry: dict[str, OperationFactory] = {}
    for cls in (
        CompressOperation,
        DecompressOperation,
        CompressLiteralsOperation,
        DecompressLiteralsOperation,
    ):
        registry[cls.name] = cls.from_config
    return registry


def get_factory(registry: dict[str, OperationFactory], name: str) -> OperationFactory:
    """Look up *name*, failing with the list of known operations."""
    try:
        return registry[name]
    except KeyError:
        raise KeyError(
            f"Unknown benchmark '{name}'. Known: {', '.join(sorted(registry))}"
        ) from None
