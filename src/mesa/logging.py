"""Logging setup for mesa.

Diagnostics go to stderr through the ``mesa`` logger so that the report
itself, which may be written to stdout, stays clean.  INFO records are
the per-run progress lines and summaries, so the console prints them
bare; only DEBUG and WARNING-or-worse carry a level prefix.  An optional
file handler always logs at DEBUG with timestamps.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "mesa"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"


class ConsoleFormatter(logging.Formatter):
    """Progress (INFO) lines as-is, everything else with its level."""

    def __init__(self) -> None:
        super().__init__(_CONSOLE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return super().format(record)


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the mesa logger.

    Args:
        verbose: Console shows DEBUG records (per-run CPU times).
        quiet: Console shows warnings and errors only.  Ignored if
            *verbose* is True.
        log_file: Also log everything at DEBUG to this file.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    # mesa owns its handlers; a root configuration must not print twice.
    logger.propagate = False
    logger.handlers.clear()

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(ConsoleFormatter())
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    return logger
