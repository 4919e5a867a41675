"""Logging setup for zstdbench.

The console handler follows the CLI's ``--verbose``/``--quiet`` flags; an
optional file handler records everything at DEBUG.  Measurement children
share the parent's terminal, so their console lines carry the revision
being measured.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "zstdbench"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _console_format(tag: str | None) -> str:
    if tag:
        return f"%(levelname)-8s [{tag}] %(message)s"
    return "%(levelname)-8s %(message)s"


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    tag: str | None = None,
) -> logging.Logger:
    """Configure and return the ``zstdbench`` logger.

    Calling it again replaces the previous handlers.

    Args:
        verbose: Console at DEBUG.
        quiet: Console at WARNING.  *verbose* wins if both are set.
        log_file: Also log everything at DEBUG to this file.
        tag: Prefix for console lines, e.g. the revision a child measures.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_console_format(tag)))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger ``zstdbench.<name>``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
