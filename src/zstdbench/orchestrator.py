"""Multi-revision benchmarking session.

For each configured revision, strictly one after another:
1. Build the library (``LibraryBuilder.build``)
2. Optionally archive the built library under ``bin_dir/<commit>/``
3. Measure it in a fresh child process, so each revision's library is
   the only one ever loaded into that process

Every child appends to the same result store; the session stops at the
first failing revision.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import time
from pathlib import Path
from typing import Any

from zstdbench.config import SessionConfig
from zstdbench.formatting import format_duration
from zstdbench.logging import get_logger
from zstdbench.results import BuildInfo, truncate_results

log = get_logger("orchestrator")


class RevisionError(RuntimeError):
    """A revision's measurement process failed."""


# ---------------------------------------------------------------------------
# Child process commands
# ---------------------------------------------------------------------------


def measure_command(
    session: SessionConfig,
    *,
    config_path: Path,
    build_info: Path,
    output: Path,
    archive: Path | None = None,
    verbose: bool = False,
) -> list[str]:
    """The argv of the measurement child for one build."""
    cmd = list(session.command_prefix) + [
        sys.executable,
        "-m",
        "zstdbench",
        "measure",
        "--config",
        str(config_path),
        "--build-info",
        str(build_info),
        "--output",
        str(output),
    ]
    if archive is not None:
        cmd += ["--archive", str(archive)]
    if verbose:
        cmd.append("--verbose")
    return cmd


def print_commit(config_path: Path, build_info: Path) -> str:
    """Ask the measurement entry point which commit *build_info* describes.

    Raises:
        RevisionError: If the child cannot run, times out or exits non-zero.
    """
    cmd = [
        sys.executable,
        "-m",
        "zstdbench",
        "measure",
        "--config",
        str(config_path),
        "--build-info",
        str(build_info),
        "--print-commit",
    ]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise RevisionError(f"--print-commit failed: {exc}") from exc
    if proc.returncode != 0:
        raise RevisionError(f"--print-commit failed: {proc.stderr.strip()}")
    return proc.stdout.strip()


def copy_artifact(library: Path, bin_dir: Path, revision: str, commit: str) -> Path:
    """Copy *library* to ``bin_dir/<commit>/`` and point ``bin_dir/<revision>`` at it.

    Any existing ``<revision>`` symlink is replaced.  No link is made
    when the revision already is the commit hash.
    """
    commit_dir = bin_dir / commit
    commit_dir.mkdir(parents=True, exist_ok=True)
    target = commit_dir / library.name
    shutil.copy2(library, target)

    link = bin_dir / revision
    if link.is_symlink():
        link.unlink()
    if commit != revision:
        os.symlink(commit, link)
    log.info("Archived %s as %s", revision, target)
    return target


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def _measure_revision(cmd: list[str], revision: str) -> None:
    log.debug("$ %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd)
    except OSError as exc:
        raise RevisionError(f"Cannot start measurement of {revision}: {exc}") from exc
    if proc.returncode != 0:
        raise RevisionError(f"Measurement of {revision} exited with {proc.returncode}")


def run_session(
    session: SessionConfig,
    *,
    config_path: Path,
    builder: Any,
    output: Path,
    archive: Path | None = None,
    bin_dir: Path | None = None,
    benchmark: bool = True,
    verbose: bool = False,
) -> list[BuildInfo]:
    """Build and measure every revision of *session* in order.

    The measurement child has no timeout: a hung revision hangs the
    session.

    Args:
        builder: Object with ``build(revision) -> BuildInfo`` and
            ``build_info_path(info) -> Path`` (a LibraryBuilder).

    Returns:
        The BuildInfo of every revision, in order.  Empty, with nothing
        built, when neither measuring nor archiving.

    Raises:
        BuildError: If building a revision fails.
        RevisionError: If a measurement child fails.
    """
    if not benchmark and bin_dir is None:
        log.info("Nothing to do: not benchmarking and no bin directory")
        return []
    if benchmark:
        truncate_results(output)

    builds: list[BuildInfo] = []
    for index, revision in enumerate(session.revisions, 1):
        start = time.monotonic()
        log.info("[%d/%d] %s", index, len(session.revisions), revision)
        info = builder.build(revision)
        info_path = builder.build_info_path(info)

        if bin_dir is not None:
            commit = print_commit(config_path, info_path)
            copy_artifact(Path(info.library_path), bin_dir, revision, commit)

        if benchmark:
            cmd = measure_command(
                session,
                config_path=config_path,
                build_info=info_path,
                output=output,
                archive=archive,
                verbose=verbose,
            )
            _measure_revision(cmd, revision)

        builds.append(info)
        log.info("Finished %s in %s", revision, format_duration(time.monotonic() - start))
    return builds
