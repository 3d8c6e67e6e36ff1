"""Run configuration and the optional YAML defaults file.

Handles:
- The resolved :class:`RunConfig` consumed by the runner, store and reporter.
- Loading per-project defaults from a YAML file (``.mesa.yaml``).
- Merging command-line options over file defaults over built-ins.
- Validating the final configuration before anything is executed.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mesa.errors import ConfigurationError, OutputError

log = logging.getLogger("mesa")

DEFAULT_DATABASE = ".mesa.data"
DEFAULT_OUTPUT = "stdout"
DEFAULT_DEFAULTS_FILE = ".mesa.yaml"


# ---------------------------------------------------------------------------
# FilterMode
# ---------------------------------------------------------------------------


class FilterMode(enum.Enum):
    """Which history records are shown next to the current run."""

    ALL = "all"
    EXE = "exe"
    EXACT = "exact"

    @classmethod
    def parse(cls, value: str) -> FilterMode:
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"Unknown filter mode '{value}' (expected one of: {choices})"
            ) from None


# ---------------------------------------------------------------------------
# RunConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    """Resolved parameters for one benchmark invocation."""

    # Target
    executable: str = ""
    arguments: list[str] = field(default_factory=list)

    # Storage and reporting
    database: str = DEFAULT_DATABASE
    output: str = DEFAULT_OUTPUT
    note: str = ""
    filter_mode: FilterMode = FilterMode.EXACT
    show: int = 10
    color: bool | None = None  # None = auto (terminal only)

    # Execution
    runs: int = 1
    warmup: int = 0
    ignore_failure: bool = False
    dry_run: bool = False
    verbose: bool = False

    @property
    def flat_arguments(self) -> str:
        """Arguments joined by single spaces, as stored and compared.

        This is lossy: ``["a b"]`` and ``["a", "b"]`` flatten to the
        same string and therefore match each other in exact mode.
        """
        return " ".join(self.arguments)

    @property
    def command(self) -> list[str]:
        return [self.executable, *self.arguments]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str


def validate_config(config: RunConfig) -> list[ValidationError]:
    """Validate a run configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not config.executable:
        errors.append(
            ValidationError(
                field="executable",
                message=(
                    "The target program is missing. Use '--' to separate "
                    "mesa options from the program to be executed."
                ),
            )
        )

    if config.runs < 0:
        errors.append(
            ValidationError(
                field="runs",
                message=f"Run count cannot be negative (got {config.runs}).",
            )
        )
    elif config.runs == 0 and not config.dry_run:
        errors.append(
            ValidationError(
                field="runs",
                message="Need at least 1 measured run (zero runs is only allowed with --dry-run).",
            )
        )

    if config.warmup < 0:
        errors.append(
            ValidationError(
                field="warmup",
                message=f"Warmup runs cannot be negative (got {config.warmup}).",
            )
        )

    if config.show < 1:
        errors.append(
            ValidationError(
                field="show",
                message=f"Display cap must be at least 1 (got {config.show}).",
            )
        )

    if not config.database:
        errors.append(
            ValidationError(
                field="database",
                message="Database path cannot be empty.",
            )
        )

    from mesa.output import resolve_target  # mesa.output imports this module

    try:
        resolve_target(config.output)
    except OutputError as exc:
        errors.append(ValidationError(field="output", message=str(exc)))

    return errors


def check_config(config: RunConfig) -> RunConfig:
    """Raise :class:`ConfigurationError` if *config* has any errors."""
    messages = [e.message for e in validate_config(config)]
    if messages:
        raise ConfigurationError("Invalid configuration:\n" + "\n".join(messages))
    return config


# ---------------------------------------------------------------------------
# YAML defaults file
# ---------------------------------------------------------------------------

_DEFAULTS_KEYS = {
    "database",
    "output",
    "note",
    "runs",
    "warmup",
    "filter",
    "show",
    "ignore_failure",
    "color",
}


def load_defaults(path: Path | None = None) -> dict[str, Any]:
    """Load per-project defaults from a YAML file.

    File format::

        database: .bench/history.data
        runs: 10
        warmup: 2
        filter: exe
        show: 20

    When *path* is None the default ``.mesa.yaml`` in the working
    directory is used if it exists; an explicitly given path must exist.

    Returns:
        The parsed mapping (empty if there is no defaults file).
    """
    import yaml

    if path is None:
        path = Path(DEFAULT_DEFAULTS_FILE)
        if not path.exists():
            return {}
    elif not path.exists():
        raise ConfigurationError(f"Defaults file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read defaults file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Defaults file must be a YAML mapping, got {type(data).__name__}"
        )

    unknown = sorted(str(k) for k in data if k not in _DEFAULTS_KEYS)
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in defaults file {path}: {', '.join(unknown)}"
        )

    log.debug("Loaded defaults from %s: %s", path, data)
    return data


def _pick(cli: dict[str, Any], defaults: dict[str, Any], key: str, fallback: Any) -> Any:
    """CLI value (when given) > defaults file > built-in."""
    if cli.get(key) is not None:
        return cli[key]
    if defaults.get(key) is not None:
        return defaults[key]
    return fallback


def config_from_defaults(
    defaults: dict[str, Any],
    command: list[str] | tuple[str, ...],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> RunConfig:
    """Build a :class:`RunConfig` from file defaults and CLI options.

    Args:
        defaults: Parsed defaults file (see :func:`load_defaults`).
        command: Target program followed by its arguments.
        cli_overrides: Option values from the command line; ``None``
            values mean "not given".  Keys match the defaults file keys
            plus ``dry_run`` and ``verbose``.

    Returns:
        RunConfig; call :func:`check_config` before using it.
    """
    cli = cli_overrides or {}

    filter_value = _pick(cli, defaults, "filter", FilterMode.EXACT)
    if not isinstance(filter_value, FilterMode):
        filter_value = FilterMode.parse(str(filter_value))

    try:
        runs = int(_pick(cli, defaults, "runs", 1))
        warmup = int(_pick(cli, defaults, "warmup", 0))
        show = int(_pick(cli, defaults, "show", 10))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Expected an integer in defaults: {exc}") from exc

    color = _pick(cli, defaults, "color", None)

    return RunConfig(
        executable=command[0] if command else "",
        arguments=list(command[1:]),
        database=str(_pick(cli, defaults, "database", DEFAULT_DATABASE)),
        output=str(_pick(cli, defaults, "output", DEFAULT_OUTPUT)),
        note=str(_pick(cli, defaults, "note", "")),
        filter_mode=filter_value,
        show=show,
        color=None if color is None else bool(color),
        runs=runs,
        warmup=warmup,
        ignore_failure=bool(_pick(cli, defaults, "ignore_failure", False)),
        dry_run=bool(cli.get("dry_run", False)),
        verbose=bool(cli.get("verbose", False)),
    )
