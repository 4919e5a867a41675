"""Session configuration loading and validation.

Handles:
- Loading a session description from a YAML file.
- Parsing dataset declarations and their load modes.
- Splitting benchmark declarations into named configuration variants.
- Validating the final configuration before anything is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from zstdbench.logging import get_logger

log = get_logger("config")

DEFAULT_MIN_SECS = 10
DEFAULT_MIN_RUNS = 3
DEFAULT_MIN_MS_PER_RUN = 100
DEFAULT_MIN_ITERS_PER_RUN = 1


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DataSetMode:
    """How the files of a dataset become datums.

    ``kind`` is one of ``"separate"``, ``"concatenate"`` or ``"cut"``;
    ``chunk_size`` is only meaningful for ``"cut"``.
    """

    kind: str = "separate"
    chunk_size: int = 0

    @classmethod
    def separate(cls) -> DataSetMode:
        return cls("separate")

    @classmethod
    def concatenate(cls) -> DataSetMode:
        return cls("concatenate")

    @classmethod
    def cut(cls, chunk_size: int) -> DataSetMode:
        if chunk_size <= 0:
            raise ValueError(f"Cut size must be positive (got {chunk_size}).")
        return cls("cut", chunk_size)

    @classmethod
    def parse(cls, value: Any) -> DataSetMode:
        """Parse a mode declaration.

        Accepts ``"separate"`` (any string starting with ``sep``),
        ``"concatenate"`` (starting with ``cat`` or ``concat``) or a
        single-key mapping ``{cut: <bytes>}``.
        """
        if value is None:
            return cls.separate()
        if isinstance(value, dict):
            if len(value) != 1 or "cut" not in value:
                raise ValueError(f"Dataset mode mapping must be {{cut: <bytes>}}, got {value!r}")
            size = value["cut"]
            if isinstance(size, bool) or not isinstance(size, int):
                raise ValueError(f"Cut size must be an integer, got {size!r}")
            return cls.cut(size)
        if isinstance(value, str):
            if value.startswith("cat") or value.startswith("concat"):
                return cls.concatenate()
            if value.startswith("sep"):
                return cls.separate()
        raise ValueError(f"Unknown dataset mode: {value!r}")

    def __str__(self) -> str:
        if self.kind == "cut":
            return f"cut({self.chunk_size})"
        return self.kind


@dataclass
class DataSetConfig:
    """A named group of files to benchmark against."""

    name: str
    globs: list[str] = field(default_factory=list)
    mode: DataSetMode = field(default_factory=DataSetMode.separate)


# ---------------------------------------------------------------------------
# Benchmarks
# ---------------------------------------------------------------------------

Parameter = str | int | bool


@dataclass
class BenchmarkConfig:
    """Parameters of one benchmark configuration variant."""

    parameters: dict[str, Parameter] = field(default_factory=dict)
    datasets: set[str] | None = None  # None = all datasets

    def get_int(self, name: str, default: int | None = None) -> int | None:
        value = self.parameters.get(name)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Parameter '{name}' must be an integer, got {value!r}")
        return value

    def get_str(self, name: str, default: str | None = None) -> str | None:
        value = self.parameters.get(name)
        if value is None:
            return default
        if not isinstance(value, str):
            raise ValueError(f"Parameter '{name}' must be a string, got {value!r}")
        return value

    def get_bool(self, name: str, default: bool | None = None) -> bool | None:
        value = self.parameters.get(name)
        if value is None:
            return default
        if not isinstance(value, bool):
            raise ValueError(f"Parameter '{name}' must be a boolean, got {value!r}")
        return value

    def allows(self, dataset_name: str) -> bool:
        """Whether this configuration runs against *dataset_name*."""
        return self.datasets is None or dataset_name in self.datasets


# ---------------------------------------------------------------------------
# SessionConfig
# ---------------------------------------------------------------------------


@dataclass
class SessionConfig:
    """Resolved configuration for a benchmarking session."""

    repo: str = ""
    revisions: list[str] = field(default_factory=list)
    command_prefix: list[str] = field(default_factory=list)

    datasets: list[DataSetConfig] = field(default_factory=list)
    # benchmark name -> [(variant name or None, config)], in declaration order
    benchmarks: dict[str, list[tuple[str | None, BenchmarkConfig]]] = field(
        default_factory=dict
    )

    # Calibration floors
    min_secs: int = DEFAULT_MIN_SECS
    min_runs: int = DEFAULT_MIN_RUNS
    min_ms_per_run: int = DEFAULT_MIN_MS_PER_RUN
    min_iters_per_run: int = DEFAULT_MIN_ITERS_PER_RUN

    @property
    def target_run_ns(self) -> int:
        """Target duration of one run, in nanoseconds."""
        return self.min_ms_per_run * 1_000_000

    @property
    def target_total_ns(self) -> int:
        """Target total duration of all runs, in nanoseconds."""
        return self.min_secs * 1_000_000_000

    def configs_for_benchmark(self, name: str) -> list[tuple[str | None, BenchmarkConfig]]:
        return self.benchmarks.get(name, [])


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(
    config: SessionConfig,
    known_benchmarks: set[str] | None = None,
) -> list[ValidationError]:
    """Validate a session configuration.

    Returns a list of validation errors.  Empty list means valid.

    Args:
        config: The session to check.
        known_benchmarks: Names of registered operations.  When given,
            every declared benchmark must be one of them.
    """
    errors: list[ValidationError] = []

    if not config.datasets:
        errors.append(ValidationError("datasets", "No datasets declared."))
    if not config.benchmarks:
        errors.append(ValidationError("benchmarks", "No benchmarks declared."))

    dataset_names = [ds.name for ds in config.datasets]
    if len(set(dataset_names)) != len(dataset_names):
        errors.append(ValidationError("datasets", "Dataset names must be unique."))

    for ds in config.datasets:
        if not ds.globs:
            errors.append(
                ValidationError(f"datasets.{ds.name}.files", f"Dataset '{ds.name}' has no files.")
            )

    for name, variants in config.benchmarks.items():
        if known_benchmarks is not None and name not in known_benchmarks:
            errors.append(
                ValidationError(
                    f"benchmarks.{name}",
                    f"Unknown benchmark '{name}'. Known: {', '.join(sorted(known_benchmarks))}",
                )
            )
        for variant, bm_config in variants:
            if bm_config.datasets is None:
                continue
            label = f"benchmarks.{name}" + (f".{variant}" if variant else "")
            for ds_name in sorted(bm_config.datasets):
                if ds_name not in dataset_names:
                    errors.append(
                        ValidationError(
                            f"{label}.datasets",
                            f"Dataset '{ds_name}' is not declared; it will never run.",
                            severity="warning",
                        )
                    )

    for attr, minimum in (
        ("min_secs", 0),
        ("min_runs", 1),
        ("min_ms_per_run", 1),
        ("min_iters_per_run", 1),
    ):
        value = getattr(config, attr)
        if value < minimum:
            errors.append(ValidationError(attr, f"{attr} must be >= {minimum} (got {value})."))

    if config.revisions and not config.repo:
        errors.append(ValidationError("repo", "Revisions are declared but no repo is set."))

    return errors


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_parameter(benchmark: str, key: str, value: Any) -> Parameter:
    if isinstance(value, (bool, int, str)):
        return value
    raise ValueError(
        f"Benchmark '{benchmark}': parameter '{key}' has unsupported type "
        f"{type(value).__name__} (expected string, integer or boolean)"
    )


def _parse_benchmark_config(benchmark: str, data: Mapping[str, Any] | None) -> BenchmarkConfig:
    config = BenchmarkConfig()
    for key, value in (data or {}).items():
        if isinstance(value, list):
            if key != "datasets":
                raise ValueError(f"Benchmark '{benchmark}': only 'datasets' may be a list")
            config.datasets = {str(v) for v in value}
        else:
            config.parameters[key] = _parse_parameter(benchmark, key, value)
    return config


def _parse_benchmarks(data: Any) -> dict[str, list[tuple[str | None, BenchmarkConfig]]]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("'benchmarks' must be a mapping of benchmark name -> parameters")

    benchmarks: dict[str, list[tuple[str | None, BenchmarkConfig]]] = {}
    for name, body in data.items():
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise ValueError(f"Benchmark '{name}' must be a mapping, got {type(body).__name__}")
        # Any nested mapping turns the benchmark into a set of named variants.
        if any(isinstance(v, dict) for v in body.values()):
            variants: list[tuple[str | None, BenchmarkConfig]] = []
            for variant, variant_body in body.items():
                if variant_body is not None and not isinstance(variant_body, dict):
                    raise ValueError(
                        f"Benchmark '{name}': variant '{variant}' must be a mapping, "
                        f"got {type(variant_body).__name__}"
                    )
                variants.append(
                    (str(variant), _parse_benchmark_config(f"{name}.{variant}", variant_body))
                )
            benchmarks[name] = variants
        else:
            benchmarks[name] = [(None, _parse_benchmark_config(name, body))]
    return benchmarks


def _parse_datasets(data: Any) -> list[DataSetConfig]:
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ValueError("'datasets' must be a mapping of dataset name -> definition")

    datasets: list[DataSetConfig] = []
    for name, body in data.items():
        if not isinstance(body, dict):
            raise ValueError(f"Dataset '{name}' must be a mapping, got {type(body).__name__}")
        files = body.get("files", [])
        if isinstance(files, str):
            files = [files]
        if not isinstance(files, list):
            raise ValueError(f"Dataset '{name}': 'files' must be a list of glob patterns")
        datasets.append(
            DataSetConfig(
                name=str(name),
                globs=[str(f) for f in files],
                mode=DataSetMode.parse(body.get("mode")),
            )
        )
    return datasets


def _opt_int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    return value


def config_from_dict(data: Mapping[str, Any]) -> SessionConfig:
    """Build a SessionConfig from a parsed configuration mapping."""
    revisions = data.get("revisions", [])
    if isinstance(revisions, str):
        revisions = [revisions]
    command_prefix = data.get("command_prefix", [])
    if isinstance(command_prefix, str):
        command_prefix = command_prefix.split()

    return SessionConfig(
        repo=str(data.get("repo", "")),
        revisions=[str(r) for r in revisions],
        command_prefix=[str(c) for c in command_prefix],
        datasets=_parse_datasets(data.get("datasets")),
        benchmarks=_parse_benchmarks(data.get("benchmarks")),
        min_secs=_opt_int(data, "min_secs", DEFAULT_MIN_SECS),
        min_runs=_opt_int(data, "min_runs", DEFAULT_MIN_RUNS),
        min_ms_per_run=_opt_int(data, "min_ms_per_run", DEFAULT_MIN_MS_PER_RUN),
        min_iters_per_run=_opt_int(data, "min_iters_per_run", DEFAULT_MIN_ITERS_PER_RUN),
    )


def load_config(
    config_path: Path,
    known_benchmarks: set[str] | None = None,
) -> SessionConfig:
    """Load and validate a session configuration from a YAML file.

    Relative dataset globs are resolved against the directory holding
    the configuration file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is malformed or fails validation.
    """
    import yaml

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Cannot parse {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}")

    config = config_from_dict(data)
    base = config_path.parent
    for ds in config.datasets:
        ds.globs = [g if Path(g).is_absolute() else str(base / g) for g in ds.globs]

    errors = validate_config(config, known_benchmarks)
    for w in errors:
        if w.severity == "warning":
            log.warning("Config warning: %s: %s", w.field, w.message)
    fatal = [e for e in errors if e.severity == "error"]
    if fatal:
        messages = [f"  {e.field}: {e.message}" for e in fatal]
        raise ValueError("Invalid session configuration:\n" + "\n".join(messages))
    return config
