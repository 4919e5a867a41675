"""Checkout and compilation of libzstd revisions.

Layout under the work directory::

    work_dir/repo/                     (clone of the zstd repository)
    work_dir/builds/<commit>/libzstd.so
    work_dir/builds/<commit>/build_info.json

The library is the literals shim (``shim/literals.c``) compiled together
with the revision's lib/common, lib/compress and lib/decompress sources.
A build whose recorded compiler, flags and shim hash match the requested
ones is reused instead of rebuilt.
"""

from __future__ import annotations

import hashlib
import os
import re
import shlex
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from zstdbench.logging import get_logger
from zstdbench.results import BuildInfo, load_build_info, save_build_info

log = get_logger("build")

LIBRARY_NAME = "libzstd.so"
BUILD_INFO_NAME = "build_info.json"
SHIM_SOURCE = Path(__file__).parent / "shim" / "literals.c"
SOURCE_DIRS = ("common", "compress", "decompress")

_CC_VERSION_RE = re.compile(r"\s(\d+\.\d+\.\d+)\s")


class BuildError(RuntimeError):
    """A git or compiler step failed."""


def parse_cc_version(output: str) -> str | None:
    """Pull the first ``x.y.z`` version out of ``cc --version`` output."""
    match = _CC_VERSION_RE.search(output + "\n")
    return match.group(1) if match else None


def shim_hash() -> str:
    """Digest of the shim source, part of the build cache key."""
    return hashlib.blake2b(SHIM_SOURCE.read_bytes(), digest_size=8).hexdigest()


class LibraryBuilder:
    """Builds the shared library for a revision of *repo*."""

    def __init__(
        self,
        repo: str,
        work_dir: Path,
        cc: str = "cc",
        cflags: str = "",
        jobs: int | None = None,
    ) -> None:
        self.repo = repo
        self.work_dir = work_dir
        self.cc = cc
        self.cflags = cflags
        self.jobs = jobs

    @property
    def repo_dir(self) -> Path:
        return self.work_dir / "repo"

    def build_dir(self, commit: str) -> Path:
        return self.work_dir / "builds" / commit

    # -- subprocess helpers -------------------------------------------------

    def _run(
        self,
        cmd: list[str],
        *,
        cwd: Path | None = None,
        timeout: int = 600,
        env: dict[str, str] | None = None,
    ) -> str:
        log.debug("$ %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=str(cwd) if cwd else None,
                timeout=timeout,
                env=env,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise BuildError(f"{' '.join(cmd)}: {exc}") from exc
        if proc.returncode != 0:
            raise BuildError(
                f"{' '.join(cmd)} exited with {proc.returncode}: {proc.stderr.strip()[-500:]}"
            )
        return proc.stdout

    def _git(self, *args: str, timeout: int = 300) -> str:
        return self._run(["git", *args], cwd=self.repo_dir, timeout=timeout)

    def _git_ok(self, *args: str) -> bool:
        try:
            self._git(*args, timeout=30)
        except BuildError:
            return False
        return True

    # -- steps --------------------------------------------------------------

    def prepare_repo(self) -> None:
        """Clone the repository, or fetch into an existing clone."""
        if (self.repo_dir / ".git").exists():
            log.info("Fetching %s...", self.repo)
            self._git("remote", "set-url", "origin", self.repo)
            self._git("fetch", "--tags", "--force", "origin")
        else:
            log.info("Cloning %s...", self.repo)
            self.repo_dir.parent.mkdir(parents=True, exist_ok=True)
            self._run(["git", "clone", self.repo, str(self.repo_dir)], timeout=1800)

    def resolve(self, revision: str) -> str:
        """Resolve *revision* to a full commit hash, trying ``origin/`` second."""
        for candidate in (revision, f"origin/{revision}"):
            if self._git_ok("rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"):
                return self._git("rev-parse", f"{candidate}^{{commit}}").strip()
        raise BuildError(f"Cannot resolve revision '{revision}' in {self.repo}")

    def describe(self, revision: str, commit: str) -> BuildInfo:
        """Collect the identity of *revision* without building it."""
        tag = f"refs/tags/{revision}"
        branch = f"refs/remotes/origin/{revision}"
        timestamp = self._git("log", "-1", "--format=%ct", commit).strip()
        return BuildInfo(
            revision=revision,
            commit=commit,
            tag=tag if self._git_ok("show-ref", "--verify", "--quiet", tag) else None,
            branch=branch if self._git_ok("show-ref", "--verify", "--quiet", branch) else None,
            commit_timestamp=int(timestamp) if timestamp else None,
            cc=self.cc,
            cc_version=self.compiler_version(),
            cflags=self.cflags,
            shim_hash=shim_hash(),
        )

    def compiler_version(self) -> str | None:
        try:
            return parse_cc_version(self._run([self.cc, "--version"], timeout=30))
        except BuildError as exc:
            log.warning("Cannot query %s version: %s", self.cc, exc)
            return None

    def checkout(self, commit: str) -> None:
        self._git("checkout", "--force", "--detach", commit)
        self._git("clean", "-fdx")

    def sources(self) -> list[Path]:
        """The shim plus every C and assembly source of the checked-out lib/."""
        lib_dir = self.repo_dir / "lib"
        found: list[Path] = []
        for sub in SOURCE_DIRS:
            found += sorted(p for p in (lib_dir / sub).glob("*") if p.suffix in (".c", ".S"))
        if not found:
            raise BuildError(f"No sources under {lib_dir}")
        return [SHIM_SOURCE] + found

    def _object(self, source: Path, obj_dir: Path) -> Path:
        obj = obj_dir / f"{source.parent.name}_{source.stem}.o"
        self._run(
            [
                self.cc,
                "-c",
                "-fPIC",
                "-O3",
                "-g",
                "-I",
                str(self.repo_dir / "lib"),
                *shlex.split(self.cflags),
                str(source),
                "-o",
                str(obj),
            ],
            cwd=self.repo_dir,
        )
        return obj

    def compile(self) -> Path:
        """Compile the shim with lib/ into one shared library; return it."""
        sources = self.sources()
        obj_dir = self.work_dir / "obj"
        shutil.rmtree(obj_dir, ignore_errors=True)
        obj_dir.mkdir(parents=True)

        log.info("Compiling %d sources with %s %s", len(sources), self.cc, self.cflags)
        objects: list[Path] = []
        with ThreadPoolExecutor(max_workers=self.jobs or os.cpu_count() or 1) as pool:
            futures = {pool.submit(self._object, src, obj_dir): src for src in sources}
            for future in as_completed(futures):
                objects.append(future.result())

        library = obj_dir / LIBRARY_NAME
        self._run(
            [
                self.cc,
                "-shared",
                *shlex.split(self.cflags),
                *sorted(str(o) for o in objects),
                "-o",
                str(library),
            ],
            cwd=self.repo_dir,
        )
        return library

    def _cached(self, info: BuildInfo) -> BuildInfo | None:
        info_path = self.build_dir(info.commit) / BUILD_INFO_NAME
        if not info_path.exists():
            return None
        cached = load_build_info(info_path)
        key = (info.cc, info.cc_version, info.cflags, info.shim_hash)
        if (cached.cc, cached.cc_version, cached.cflags, cached.shim_hash) != key:
            return None
        if not Path(cached.library_path).exists():
            return None
        # The revision name may differ for the same commit.
        cached.revision = info.revision
        cached.tag = info.tag
        cached.branch = info.branch
        return cached

    def build(self, revision: str) -> BuildInfo:
        """Check out and compile *revision*.

        Returns:
            The BuildInfo, also written to ``build_info.json`` in the
            revision's build directory.

        Raises:
            BuildError: If any git or compiler step fails.
        """
        self.prepare_repo()
        commit = self.resolve(revision)
        info = self.describe(revision, commit)
        log.info("Revision %s is commit %s", revision, commit[:10])

        out_dir = self.build_dir(commit)
        cached = self._cached(info)
        if cached is not None:
            log.info("Reusing build of %s", commit[:10])
            info = cached
        else:
            self.checkout(commit)
            library = self.compile()
            out_dir.mkdir(parents=True, exist_ok=True)
            target = out_dir / LIBRARY_NAME
            shutil.copy2(library, target)
            info.library_path = str(target)

        save_build_info(out_dir / BUILD_INFO_NAME, info)
        return info

    def build_info_path(self, info: BuildInfo) -> Path:
        return self.build_dir(info.commit) / BUILD_INFO_NAME
