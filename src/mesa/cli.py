"""Command-line interface for mesa.

Usage::

    mesa [OPTIONS] [--] PROGRAM [ARGS]...

Runs PROGRAM, stores the timing in the history file and prints it next
to earlier runs of the same command.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from mesa import __version__
from mesa.config import (
    DEFAULT_DATABASE,
    DEFAULT_OUTPUT,
    FilterMode,
    RunConfig,
    check_config,
    config_from_defaults,
    load_defaults,
)
from mesa.database import History
from mesa.errors import MesaError
from mesa.logging import setup_logging
from mesa.output import write_output
from mesa.runner import Runner

log = logging.getLogger("mesa")


@click.command(
    context_settings={
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    }
)
@click.version_option(version=__version__, prog_name="mesa")
@click.argument("command", nargs=-1, type=click.UNPROCESSED, metavar="[--] PROGRAM [ARGS]...")
@click.option(
    "--database",
    "-d",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"History file (default: {DEFAULT_DATABASE}).",
)
@click.option(
    "--output",
    "-o",
    type=str,
    default=None,
    help=(
        f"Report target (default: {DEFAULT_OUTPUT}). The extension picks the "
        "format: .txt/.table, .csv, .json, .xml."
    ),
)
@click.option("--note", "-n", type=str, default=None, help="Free-text note stored with the run.")
@click.option("--runs", "-r", type=int, default=None, help="Measured runs (default: 1).")
@click.option("--warmup", "-w", type=int, default=None, help="Warm-up runs (default: 0).")
@click.option(
    "--filter",
    "filter_mode",
    type=click.Choice([m.value for m in FilterMode], case_sensitive=False),
    default=None,
    help="Which history to show: all, exe (same program), exact (same command line).",
)
@click.option("--show", type=int, default=None, help="Show at most N records (default: 10).")
@click.option(
    "--ignore-failure/--no-ignore-failure",
    "-i",
    default=None,
    help="Time runs that exit non-zero instead of aborting.",
)
@click.option("--dry-run", is_flag=True, help="Run and report, but do not save the history.")
@click.option(
    "--color/--no-color",
    default=None,
    help="Color the table (default: only on a terminal).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML defaults file (default: .mesa.yaml if present).",
)
@click.option("--log-file", type=click.Path(path_type=Path), default=None)
@click.option("-v", "--verbose", is_flag=True, help="Show program output and debug logs.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
def main(  # noqa: PLR0913
    command: tuple[str, ...],
    database: str | None,
    output: str | None,
    note: str | None,
    runs: int | None,
    warmup: int | None,
    filter_mode: str | None,
    show: int | None,
    ignore_failure: bool | None,
    dry_run: bool,
    color: bool | None,
    config_path: Path | None,
    log_file: Path | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """Benchmark PROGRAM and compare it with earlier runs.

    \b
    Examples:
        mesa -- make -j8
        mesa -r 10 -w 2 -n "after cache fix" -- ./build.sh release
        mesa --filter exe -o history.csv -- pytest -x
    """
    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    try:
        defaults = load_defaults(config_path)
        config = config_from_defaults(
            defaults,
            command,
            cli_overrides={
                "database": database,
                "output": output,
                "note": note,
                "runs": runs,
                "warmup": warmup,
                "filter": filter_mode,
                "show": show,
                "ignore_failure": ignore_failure,
                "color": color,
                "dry_run": dry_run,
                "verbose": verbose,
            },
        )
        check_config(config)
        benchmark(config)
    except MesaError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904


def benchmark(config: RunConfig) -> None:
    """Run the full load → measure → store → report sequence."""
    history = History(config.database)
    history.load()

    log.info("Benchmarking: %s", " ".join(config.command))
    result = Runner(config).run()

    history.insert(config, result.mean, result.stddev)
    if config.dry_run:
        log.info("Dry run: history not saved.")
    else:
        history.save()

    write_output(config.output, history.search(config), color=config.color)
