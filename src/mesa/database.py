"""Flat-file history of benchmark results.

File layout::

    mesa database|version=2
    1718000000|ls|-l|3|0.0123|0.0|baseline
    1718000100|ls|-l|3|0.0119|0.0004|

Line 1 is a literal header identifying format and version.  Every other
line is one :class:`Record`, fields joined by ``|`` in the order
``timestamp|executable|arguments|runs|mean|stddev|note``.  There is no
escaping: a ``|`` or a newline inside a text field produces a row that
will not load back.

The file is read once at start and rewritten as a whole on save.  There
is no locking; two concurrent writers lose one update.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from mesa.config import FilterMode, RunConfig
from mesa.errors import StoreLoadError, StoreSaveError

log = logging.getLogger("mesa")

DB_HEADER = "mesa database|version=2"
DELIMITER = "|"
FIELD_COUNT = 7


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


@dataclass
class Record:
    """One stored benchmark outcome."""

    timestamp: int
    executable: str
    arguments: str  # argument vector joined by single spaces
    runs: int
    time_mean: float
    time_stddev: float
    note: str = ""

    def to_line(self) -> str:
        """Serialize to one row of the history file (no newline)."""
        return DELIMITER.join(
            [
                str(self.timestamp),
                self.executable,
                self.arguments,
                str(self.runs),
                repr(self.time_mean),
                repr(self.time_stddev),
                self.note,
            ]
        )

    @classmethod
    def from_line(cls, line: str) -> Record:
        """Parse one row of the history file.

        Raises:
            ValueError: Wrong field count or a field of the wrong type.
        """
        parts = line.split(DELIMITER)
        if len(parts) != FIELD_COUNT:
            raise ValueError(f"expected {FIELD_COUNT} fields, found {len(parts)}")
        timestamp_s, executable, arguments, runs_s, mean_s, stddev_s, note = parts

        timestamp = _parse_count(timestamp_s, "timestamp")
        runs = _parse_count(runs_s, "run count")
        try:
            time_mean = float(mean_s)
        except ValueError:
            raise ValueError(f"invalid mean: {mean_s!r}") from None
        try:
            time_stddev = float(stddev_s)
        except ValueError:
            raise ValueError(f"invalid stddev: {stddev_s!r}") from None

        return cls(
            timestamp=timestamp,
            executable=executable,
            arguments=arguments,
            runs=runs,
            time_mean=time_mean,
            time_stddev=time_stddev,
            note=note,
        )

    def matches(self, config: RunConfig) -> bool:
        """True if this record passes the config's filter mode."""
        mode = config.filter_mode
        if mode is FilterMode.ALL:
            return True
        if self.executable != config.executable:
            return False
        if mode is FilterMode.EXE:
            return True
        return self.arguments == config.flat_arguments


def _parse_count(value: str, what: str) -> int:
    """Parse a non-negative decimal integer: ASCII digits only."""
    if not (value.isascii() and value.isdigit()):
        raise ValueError(f"invalid {what}: {value!r}")
    return int(value)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class History:
    """The history file loaded into memory.

    ``records`` holds every row in file order, oldest first, and is the
    single source of truth for what :meth:`save` writes.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.records: list[Record] = []

    def __len__(self) -> int:
        return len(self.records)

    def load(self) -> None:
        """Read the history file.

        A missing file is not an error: the history starts empty.  Any
        other problem fails the whole load and leaves ``records``
        untouched.

        Raises:
            StoreLoadError: Unreadable file, wrong header, or a malformed row.
        """
        if not self.path.exists():
            log.debug("No history at %s; starting empty.", self.path)
            self.records = []
            return

        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreLoadError(f"Failed to read database file {self.path}: {exc}") from exc

        # Only "\n" ends a row; str.splitlines() would also split on
        # control characters that are legal inside a note.
        lines = [line.removesuffix("\r") for line in content.split("\n")]
        if lines and lines[-1] == "":
            lines.pop()
        if not lines:
            raise StoreLoadError(f"Error reading database header: {self.path} is empty")
        if lines[0] != DB_HEADER:
            raise StoreLoadError(f"Unsupported database version: {lines[0]!r}")

        records: list[Record] = []
        for lineno, line in enumerate(lines[1:], start=2):
            try:
                records.append(Record.from_line(line))
            except ValueError as exc:
                raise StoreLoadError(
                    f"Failed to parse entry at {self.path}:{lineno}: {exc}"
                ) from exc

        self.records = records
        log.debug("Loaded %d record(s) from %s", len(records), self.path)

    def insert(self, config: RunConfig, mean: float, stddev: float) -> Record:
        """Append a record for the run just completed.  Nothing is written."""
        record = Record(
            timestamp=int(time.time()),
            executable=config.executable,
            arguments=config.flat_arguments,
            runs=config.runs,
            time_mean=mean,
            time_stddev=stddev,
            note=config.note,
        )
        for name in ("executable", "arguments", "note"):
            value = getattr(record, name)
            if DELIMITER in value or "\n" in value or "\r" in value:
                log.warning(
                    "The %s contains '%s' or a line break; this history file "
                    "will fail to load after saving.",
                    name,
                    DELIMITER,
                )
        self.records.append(record)
        return record

    def save(self) -> None:
        """Rewrite the whole history file atomically.

        Raises:
            StoreSaveError: The file could not be written or replaced.
        """
        content = "".join(f"{line}\n" for line in [DB_HEADER, *(r.to_line() for r in self.records)])
        directory = self.path.parent
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".mesa-", suffix=".tmp")
        except OSError as exc:
            raise StoreSaveError(f"Failed to write to database file {self.path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            _unlink_quietly(tmp_path)
            raise StoreSaveError(f"Failed to write to database file {self.path}: {exc}") from exc
        except BaseException:
            _unlink_quietly(tmp_path)
            raise
        log.debug("Saved %d record(s) to %s", len(self.records), self.path)

    def search(self, config: RunConfig) -> list[Record]:
        """Return at most ``config.show`` matching records, newest first."""
        found: list[Record] = []
        for record in reversed(self.records):
            if len(found) >= config.show:
                break
            if record.matches(config):
                found.append(record)
        return found


def _unlink_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except OSError:
        pass
