"""Exception hierarchy for mesa.

Every fatal condition is raised as a :class:`MesaError` subclass and
travels unchanged to the command line, which prints the message and
exits non-zero.  Nothing is retried.
"""

from __future__ import annotations


class MesaError(Exception):
    """Base class for all mesa errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(MesaError):
    """Missing or malformed parameters, or no target program."""


class SpawnError(MesaError):
    """The target program could not be started."""


class BenchmarkFailure(MesaError):
    """The target exited non-zero and failures are not tolerated."""

    def __init__(self, message: str, *, exit_code: int, phase: str) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.phase = phase


class StoreLoadError(MesaError):
    """An existing history file could not be read or parsed."""


class StoreSaveError(MesaError):
    """The history file could not be written."""


class OutputError(MesaError):
    """Unknown output format or the output file could not be created."""
