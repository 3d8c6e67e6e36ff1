"""Render history records as a table, CSV, JSON or XML.

The output target is a single string: its extension picks the format
(``.csv``, ``.json``, ``.xml``; ``.txt``, ``.table`` or none for the
table) and a stem of ``stdout`` or ``-`` (or nothing at all) sends the
result to standard output instead of creating a file.  ``stdout.csv``
therefore prints CSV to the terminal.

Records arrive newest first.  The first one is the *anchor*: the run
just measured, against which the table computes percent changes.
"""

from __future__ import annotations

import csv
import enum
import io
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, Sequence
from xml.sax.saxutils import escape as _escape_xml

import click

from mesa.database import Record
from mesa.errors import OutputError
from mesa.formatting import format_age

log = logging.getLogger("mesa")

_TERMINAL_STEMS = {"", "-", "stdout"}
_CHANGE_THRESHOLD = 0.01
_MIN_ANCHOR_MEAN = 0.00001


# ---------------------------------------------------------------------------
# Format selection
# ---------------------------------------------------------------------------


class OutputFormat(enum.Enum):
    TABLE = "table"
    CSV = "csv"
    JSON = "json"
    XML = "xml"


_FORMATS_BY_EXTENSION: dict[str, OutputFormat] = {
    "": OutputFormat.TABLE,
    "txt": OutputFormat.TABLE,
    "table": OutputFormat.TABLE,
    "csv": OutputFormat.CSV,
    "json": OutputFormat.JSON,
    "xml": OutputFormat.XML,
}


@dataclass(frozen=True)
class OutputTarget:
    """Where a report goes and in which format."""

    path: Path | None  # None = standard output
    format: OutputFormat

    @property
    def terminal(self) -> bool:
        return self.path is None

    def open(self) -> Sink:
        """Create the sink.  Files are created (truncated) here."""
        if self.path is None:
            return TerminalSink()
        return FileSink(self.path)


def resolve_target(output: str) -> OutputTarget:
    """Turn an ``--output`` value into an :class:`OutputTarget`.

    Raises:
        OutputError: The extension does not name a known format.
    """
    path = Path(output)
    fmt = _FORMATS_BY_EXTENSION.get(path.suffix.lstrip(".").lower())
    if fmt is None:
        raise OutputError(f"Unknown output format for {output}")

    terminal = path.stem in _TERMINAL_STEMS and path.parent == Path(".")
    return OutputTarget(path=None if terminal else path, format=fmt)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class Sink:
    """Destination for rendered text; closed when the render ends."""

    def write(self, text: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> Sink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class TerminalSink(Sink):
    """Standard output, through ``click.echo``."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self.stream = stream

    def write(self, text: str) -> None:
        # Styles are applied by the renderer only when color is wanted.
        click.echo(text, nl=False, file=self.stream, color=True)

    def close(self) -> None:
        (self.stream or sys.stdout).flush()


class FileSink(Sink):
    """A newly created output file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            self._fh: IO[str] = open(path, "w", encoding="utf-8", newline="")
        except OSError as exc:
            raise OutputError(f"Unable to create output file {path}: {exc}") from exc

    def write(self, text: str) -> None:
        try:
            self._fh.write(text)
        except OSError as exc:
            raise OutputError(f"Write to {self.path} failed: {exc}") from exc

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def write_output(
    output: str,
    records: Sequence[Record],
    *,
    color: bool | None = None,
    now: int | None = None,
) -> None:
    """Render *records* (newest first) to the target named by *output*.

    An empty result set is reported on the diagnostic stream and
    nothing is written (no file is created).

    Args:
        output: Output target, see module docstring.
        records: Records to show, newest first.
        color: Force color on or off for the terminal.  ``None`` colors
            the table only when stdout is a tty.  Files are never colored.
        now: Reference time for the Age column (defaults to now).

    Raises:
        OutputError: Unknown format, or the file cannot be created/written.
    """
    if not records:
        log.warning("Nothing to output...")
        return

    target = resolve_target(output)
    # Files never get escape codes, even when color is forced.
    if not target.terminal:
        color = False
    elif color is None:
        color = sys.stdout.isatty()

    if target.format is OutputFormat.TABLE:
        text = render_table(records, color=color, now=now)
    else:
        text = _RENDERERS[target.format](records)

    with target.open() as sink:
        sink.write(text)
    log.debug(
        "Wrote %d record(s) as %s to %s",
        len(records),
        target.format.value,
        target.path or "stdout",
    )


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------

_TABLE_HEADERS = [
    "Age",
    "Executable",
    "Arguments",
    "Runs",
    "Mean (s)",
    "StdDev (s)",
    "Change (%)",
    "Note",
]


def _row_style(index: int, mean: float, anchor_mean: float) -> dict[str, object]:
    """click.style keywords for a data row."""
    if index == 0:
        return {"bold": True}
    # An older run noticeably faster than this one: this run regressed.
    if mean * (1 + _CHANGE_THRESHOLD) < anchor_mean:
        return {"fg": "red"}
    if mean > anchor_mean * (1 + _CHANGE_THRESHOLD):
        return {"fg": "green"}
    return {}


def render_table(
    records: Sequence[Record],
    *,
    color: bool = False,
    now: int | None = None,
) -> str:
    """Format records as an aligned, pipe-separated table.

    The first record is the anchor; Change (%) is relative to its mean.
    """
    if now is None:
        now = int(time.time())

    anchor_mean = records[0].time_mean
    if anchor_mean <= 0:
        anchor_mean = _MIN_ANCHOR_MEAN

    rows: list[list[str]] = []
    for i, r in enumerate(records):
        change = "" if i == 0 else f"{(r.time_mean - anchor_mean) / anchor_mean * 100:.2f}"
        rows.append(
            [
                format_age(r.timestamp, now),
                r.executable,
                r.arguments,
                str(r.runs),
                f"{r.time_mean:.4f}",
                f"{r.time_stddev:.4f}",
                change,
                r.note,
            ]
        )

    widths = [len(h) + 2 for h in _TABLE_HEADERS]
    for row in rows:
        for ci, cell in enumerate(row):
            widths[ci] = max(widths[ci], len(cell) + 2)

    def _line(cells: list[str]) -> str:
        return "|".join(f"{cell:^{w}}" for cell, w in zip(cells, widths))

    lines = [_line(_TABLE_HEADERS), "+".join("-" * w for w in widths)]
    for i, (r, row) in enumerate(zip(records, rows)):
        text = _line(row)
        if color:
            style = _row_style(i, r.time_mean, anchor_mean)
            if style:
                text = click.style(text, **style)  # type: ignore[arg-type]
        lines.append(text)

    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Machine-readable formats
# ---------------------------------------------------------------------------


def render_csv(records: Sequence[Record]) -> str:
    """Text fields double-quoted (``""`` escaped), numbers bare."""
    output = io.StringIO()
    csv.writer(output, lineterminator="\n").writerow(
        ["Timestamp", "Executable", "Arguments", "Runs", "Mean", "StdDev", "Note"]
    )
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for r in records:
        writer.writerow(
            [
                r.timestamp,
                r.executable,
                r.arguments,
                r.runs,
                round(r.time_mean, 6),
                round(r.time_stddev, 6),
                r.note,
            ]
        )
    return output.getvalue()


def _record_to_dict(r: Record) -> dict[str, object]:
    return {
        "timestamp": r.timestamp,
        "executable": r.executable,
        "arguments": r.arguments,
        "runs": r.runs,
        "mean": round(r.time_mean, 6),
        "stddev": round(r.time_stddev, 6),
        "note": r.note,
    }


def render_json(records: Sequence[Record]) -> str:
    return json.dumps([_record_to_dict(r) for r in records], indent=1) + "\n"


def render_xml(records: Sequence[Record]) -> str:
    """One ``<Measurement>`` per record; ``& < >`` escaped."""
    lines = ["<Measurements>"]
    for r in records:
        lines.extend(
            [
                "  <Measurement>",
                f"    <Timestamp>{r.timestamp}</Timestamp>",
                f"    <Executable>{_escape_xml(r.executable)}</Executable>",
                f"    <Arguments>{_escape_xml(r.arguments)}</Arguments>",
                f"    <Note>{_escape_xml(r.note)}</Note>",
                f"    <Runs>{r.runs}</Runs>",
                f"    <Mean>{r.time_mean:.6f}</Mean>",
                f"    <StdDev>{r.time_stddev:.6f}</StdDev>",
                "  </Measurement>",
            ]
        )
    lines.append("</Measurements>")
    return "\n".join(lines) + "\n"


_RENDERERS: dict[OutputFormat, Callable[[Sequence[Record]], str]] = {
    OutputFormat.CSV: render_csv,
    OutputFormat.JSON: render_json,
    OutputFormat.XML: render_xml,
}
