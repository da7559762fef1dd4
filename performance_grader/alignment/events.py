"""Performance event table loader.

This module reads a take from the tabular form produced by the event-stream
converter (one CSV per take). The first ``HEADER_ROWS`` rows are a header
region and are skipped. Data rows use the column layout below (0-based);
columns after the velocity are optional.

====  ==========================
 0    track number
 1    timestamp (ticks)
 2    timestamp (milliseconds)
 3    event kind (``note_on_c``, ``end_of_file``, ...)
 4    channel
 5    MIDI note number
 6    letter note (e.g. ``C4#``)
 7    velocity
 8    IOI (ticks)
 9    IOI (milliseconds)
 13   articulation (milliseconds)
 14   note duration (ticks)
 15   note duration (milliseconds)
====  ==========================
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

from performance_grader.errors import EventFormatError
from performance_grader.models import EventKind, PerformanceEvent, PerformanceTake
from performance_grader.pitch import midi_to_note_name

HEADER_ROWS = 10

TICKS_COL = 1
MILLIS_COL = 2
KIND_COL = 3
MIDI_NOTE_COL = 5
LETTER_NOTE_COL = 6
VELOCITY_COL = 7
IOI_MILLIS_COL = 9
ARTICULATION_COL = 13
NOTE_DURATION_MILLIS_COL = 15


def _cell(row: list[Any], col: int) -> str:
    if col >= len(row) or row[col] is None:
        return ""
    return str(row[col]).strip()


def _optional_float(text: str) -> float | None:
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_event_row(row: list[Any], take: str, row_number: int) -> PerformanceEvent:
    """Parse one data row of an event table.

    Parameters
    ----------
    row : list[Any]
        Raw cells of the row.
    take : str
        Take name, for error messages.
    row_number : int
        1-based row number in the table, for error messages.

    Returns
    -------
    PerformanceEvent
        The parsed event.

    Raises
    ------
    EventFormatError
        If a note event has no usable pitch or velocity, or a timestamp is
        not a number.
    """
    kind = EventKind.from_label(_cell(row, KIND_COL))

    try:
        ticks = int(float(_cell(row, TICKS_COL) or 0))
        millis = float(_cell(row, MILLIS_COL) or 0.0)
    except ValueError:
        msg = f"{take}: invalid timestamp at row {row_number}"
        raise EventFormatError(msg, take=take, row=row_number) from None

    if kind not in (EventKind.NOTE_ON, EventKind.NOTE_OFF):
        return PerformanceEvent(kind=kind, ticks=ticks, millis=millis)

    try:
        velocity = int(float(_cell(row, VELOCITY_COL)))
    except ValueError:
        msg = f"{take}: invalid velocity {_cell(row, VELOCITY_COL)!r} at row {row_number}"
        raise EventFormatError(msg, take=take, row=row_number) from None
    if not 0 <= velocity <= 127:
        msg = f"{take}: velocity {velocity} out of range 0-127 at row {row_number}"
        raise EventFormatError(msg, take=take, row=row_number)

    pitch = _cell(row, LETTER_NOTE_COL)
    if not pitch:
        try:
            pitch = midi_to_note_name(int(_cell(row, MIDI_NOTE_COL)))
        except ValueError:
            msg = f"{take}: note event without a usable pitch at row {row_number}"
            raise EventFormatError(msg, take=take, row=row_number) from None

    return PerformanceEvent(
        kind=kind,
        pitch=pitch,
        velocity=velocity,
        ticks=ticks,
        millis=millis,
        ioi_millis=_optional_float(_cell(row, IOI_MILLIS_COL)),
        articulation_millis=_optional_float(_cell(row, ARTICULATION_COL)),
        note_duration_millis=_optional_float(_cell(row, NOTE_DURATION_MILLIS_COL)),
    )


def parse_event_rows(
    rows: list[list[Any]],
    name: str,
    header_rows: int = HEADER_ROWS,
) -> PerformanceTake:
    """Parse an event table into a PerformanceTake.

    Rows after the first ``end_of_file`` row are ignored. Blank rows are
    skipped.

    Parameters
    ----------
    rows : list[list[Any]]
        All rows of the table, header region included.
    name : str
        Take name.
    header_rows : int
        Number of leading rows to skip. Default is 10.

    Returns
    -------
    PerformanceTake
        The take's events.
    """
    events: list[PerformanceEvent] = []
    for offset, row in enumerate(rows[header_rows:]):
        if not any(_cell(row, col) for col in range(len(row))):
            continue
        event = parse_event_row(row, name, header_rows + offset + 1)
        events.append(event)
        if event.kind is EventKind.END_OF_STREAM:
            break
    return PerformanceTake(name=name, events=tuple(events))


def load_take_csv(
    path: str | Path,
    name: str | None = None,
    header_rows: int = HEADER_ROWS,
) -> PerformanceTake:
    """Load a take from a CSV event table.

    Parameters
    ----------
    path : str | Path
        Path to the CSV file.
    name : str | None
        Take name. Defaults to the file stem.
    header_rows : int
        Number of leading rows to skip. Default is 10.

    Returns
    -------
    PerformanceTake
        The take's events.
    """
    path = Path(path)
    with path.open(newline="", encoding="utf-8-sig") as f:
        rows = [row for row in csv.reader(f)]
    return parse_event_rows(rows, name or path.stem, header_rows=header_rows)
