"""Command-line interface for zstdbench.

Subcommands:
    zstdbench run          Build and benchmark every configured revision
    zstdbench measure      Benchmark one built revision (spawned by run)
    zstdbench report       Render a result store as a table
    zstdbench operations   List the available benchmarks
"""

from __future__ import annotations

from pathlib import Path

import click

from zstdbench import __version__
from zstdbench.logging import get_logger, setup_logging

log = get_logger("cli")

_FORMATS = ["markdown", "pretty", "csv", "tsv", "pretty-csv", "pretty-tsv"]
_DEFAULT_KEYS = "benchmark,config,dataset,cc,revision,commit,speed_mbps,ratio"


def _parse_keys(value: str) -> list[str]:
    keys = [k.strip() for k in value.split(",") if k.strip()]
    if not keys:
        raise click.BadParameter("at least one key is required", param_hint="--keys")
    return keys


def _print_report(results_path: Path, fmt: str, keys: str, compare: str | None) -> str:
    from zstdbench.compare import Baseline
    from zstdbench.display import Format, render
    from zstdbench.results import load_results

    results = load_results(results_path)
    if not results:
        return ""
    baseline = Baseline.parse(compare) if compare else None
    return render(results, _parse_keys(keys), baseline, Format.parse(fmt))


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """zstdbench: compare zstd performance across source revisions."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


def _report_options(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--compare",
        default=None,
        metavar="KEY=BASELINE",
        help="Merge rows across KEY and show deltas against BASELINE.",
    )(func)
    func = click.option(
        "-k",
        "--keys",
        default=_DEFAULT_KEYS,
        show_default=True,
        help="Comma-separated columns, also the sort order.",
    )(func)
    func = click.option(
        "-f",
        "--format",
        "fmt",
        type=click.Choice(_FORMATS),
        default="pretty",
        show_default=True,
    )(func)
    return func


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML session configuration.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=Path("results.jsonl"),
    show_default=True,
    help="Result store, emptied at the start of the session.",
)
@click.option(
    "-a",
    "--archive",
    type=click.Path(path_type=Path),
    default=Path("archive.jsonl"),
    show_default=True,
    help="Result store that is only ever appended to.",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path(".zstdbench"),
    show_default=True,
    help="Where the repository is cloned and libraries are built.",
)
@click.option(
    "--bin-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Also keep every built library under BIN_DIR/<commit>/.",
)
@click.option("--cc", envvar="CC", default="cc", show_default=True, help="C compiler.")
@click.option("--cflags", envvar="CFLAGS", default="", help="Extra compiler flags.")
@click.option("-j", "--jobs", type=int, default=None, help="Parallel compiler jobs.")
@click.option(
    "--no-benchmark",
    is_flag=True,
    help="Only build (and archive with --bin-dir); do not measure.",
)
@click.option("--print", "print_report", is_flag=True, help="Print a report when done.")
@_report_options
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None)
def run(
    config_path: Path,
    output: Path,
    archive: Path,
    work_dir: Path,
    bin_dir: Path | None,
    cc: str,
    cflags: str,
    jobs: int | None,
    no_benchmark: bool,
    print_report: bool,
    fmt: str,
    keys: str,
    compare: str | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Build and benchmark every revision of a session."""
    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    from zstdbench.build import BuildError, LibraryBuilder
    from zstdbench.config import load_config
    from zstdbench.operations import default_registry
    from zstdbench.orchestrator import RevisionError, run_session

    try:
        session = load_config(config_path, set(default_registry()))
    except (OSError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    if not session.revisions:
        click.echo("Error: the configuration declares no revisions.", err=True)
        raise SystemExit(1)

    builder = LibraryBuilder(
        session.repo, work_dir.resolve(), cc=cc, cflags=cflags, jobs=jobs
    )
    try:
        run_session(
            session,
            config_path=config_path.resolve(),
            builder=builder,
            output=output.resolve(),
            archive=archive.resolve(),
            bin_dir=bin_dir.resolve() if bin_dir else None,
            benchmark=not no_benchmark,
            verbose=verbose,
        )
    except (BuildError, RevisionError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nSession interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    if print_report:
        try:
            click.echo(_print_report(output, fmt, keys, compare))
        except ValueError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# measure
# ---------------------------------------------------------------------------


@main.command(hidden=True)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
)
@click.option(
    "--build-info",
    "build_info_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
)
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("results.jsonl")
)
@click.option("-a", "--archive", type=click.Path(path_type=Path), default=None)
@click.option("--print-commit", is_flag=True, help="Print the build's commit and exit.")
@click.option("-v", "--verbose", is_flag=True)
@click.option("-q", "--quiet", is_flag=True)
def measure(
    config_path: Path,
    build_info_path: Path,
    output: Path,
    archive: Path | None,
    print_commit: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Benchmark one built library and append the results."""
    from zstdbench.results import load_build_info

    build = load_build_info(build_info_path)
    if print_commit:
        click.echo(build.commit)
        return

    setup_logging(verbose=verbose, quiet=quiet, tag=build.revision)

    from zstdbench.bindings import ZstdLibrary
    from zstdbench.config import load_config
    from zstdbench.operations import default_registry
    from zstdbench.runner import measure as run_measure

    registry = default_registry()
    try:
        session = load_config(config_path, set(registry))
        library = ZstdLibrary(build.library_path)
        log.info(
            "Benchmarking %s (tag %s, branch %s, libzstd %s)",
            build.commit,
            build.tag or "-",
            build.branch or "-",
            library.version,
        )
        run_measure(session, build, registry, library, output, archive)
    except (OSError, ValueError, RuntimeError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# report
# ---------------------------------------------------------------------------


@main.command()
@click.argument(
    "results_path",
    metavar="RESULTS",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@_report_options
@click.option(
    "--output",
    "-o",
    "output_file",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the report to a file instead of stdout.",
)
def report(
    results_path: Path,
    fmt: str,
    keys: str,
    compare: str | None,
    output_file: Path | None,
) -> None:
    """Render the results in RESULTS as a table."""
    try:
        text = _print_report(results_path, fmt, keys, compare)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if not text:
        click.echo("No results.", err=True)
        return
    if output_file:
        output_file.write_text(text + "\n")
        click.echo(f"Report written to {output_file}")
    else:
        click.echo(text)


# ---------------------------------------------------------------------------
# operations
# ---------------------------------------------------------------------------


@main.command()
def operations() -> None:
    """List the benchmarks a configuration can name."""
    from zstdbench.operations import default_registry

    for name in sorted(default_registry()):
        click.echo(name)


if __name__ == "__main__":
    main()
