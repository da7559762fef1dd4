"""Reference score validation.

This module checks a raw score table against the structural and content
rules the aligner relies on, and parses it into a typed ``Score``.

Checks run in a fixed order and the first failure wins:

1. header names
2. line numbers and the END sentinel
3. note names
4. durations
5. include flags
6. last-entry Include TL / Include Art. (auto-repaired, not rejected)
7. barline spacing
8. graph width, velocity graph width and x-axis limit
"""

from __future__ import annotations

import logging
import math
import re
from fractions import Fraction

from performance_grader.errors import ScoreAutoRepaired, ScoreStructureError
from performance_grader.models import Score, ScoreEntry
from performance_grader.pitch import is_note_name, normalize_note_name
from performance_grader.score.table import (
    DURATION_COL,
    EXPECTED_HEADERS,
    GRAPH_WIDTH_COL,
    INCLUDE_ART_COL,
    INCLUDE_COL,
    INCLUDE_DYN_COL,
    INCLUDE_ND_COL,
    INCLUDE_TL_COL,
    LINE_NUMBER_COL,
    NOTE_COL,
    SENTINEL_TEXT,
    SPACE_BARLINE_COL,
    VEL_GRAPH_WIDTH_COL,
    X_AXIS_LIMIT_COL,
    ScoreTable,
    column_letter,
)

logger = logging.getLogger(__name__)

DIGITS_RE = re.compile(r"^[0-9]+$")
FRACTION_RE = re.compile(r"^([0-9]+)\s*/\s*([0-9]+)$")

# Include columns in the order they are checked, with their ordinal names
INCLUDE_COLUMNS: tuple[tuple[int, str], ...] = (
    (INCLUDE_COL, "first"),
    (INCLUDE_TL_COL, "second"),
    (INCLUDE_DYN_COL, "third"),
    (INCLUDE_ART_COL, "fourth"),
    (INCLUDE_ND_COL, "fifth"),
)


def _sheet_row(row_index: int) -> int:
    """Spreadsheet row number of a 0-based data row (header is row 1)."""
    return row_index + 2


def parse_positive_int(text: str) -> int | None:
    """Parse a strictly positive whole number written with digits only."""
    if not DIGITS_RE.match(text):
        return None
    value = int(text)
    return value if value > 0 else None


def parse_positive_float(text: str) -> float | None:
    """Parse a strictly positive, finite real number."""
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def parse_duration(text: str) -> float | None:
    """Parse a note duration written as a decimal or as ``int/int``.

    Parameters
    ----------
    text : str
        Trimmed cell text.

    Returns
    -------
    float | None
        The duration as a fraction of a whole note, or None when the text
        is not a positive number.

    Examples
    --------
    >>> parse_duration("0.25")
    0.25
    >>> parse_duration("1/8")
    0.125
    >>> parse_duration("1/0") is None
    True
    >>> parse_duration("-1/4") is None
    True
    """
    value = parse_positive_float(text)
    if value is not None:
        return value
    match = FRACTION_RE.match(text)
    if match is None:
        return None
    numerator, denominator = (int(group) for group in match.groups())
    if denominator == 0 or numerator == 0:
        return None
    return float(Fraction(numerator, denominator))


def parse_flag(text: str) -> bool | None:
    """Parse a Y/N cell (case-insensitive)."""
    lowered = text.lower()
    if lowered == "y":
        return True
    if lowered == "n":
        return False
    return None


def check_headers(table: ScoreTable) -> list[str]:
    """Return every header cell that does not match the expected name.

    Parameters
    ----------
    table : ScoreTable
        The raw score table.

    Returns
    -------
    list[str]
        The offending header texts, in column order. Empty when the header
        row is correct.
    """
    bad_headers: list[str] = []
    for col, expected in enumerate(EXPECTED_HEADERS):
        actual = table.header_text(col)
        if actual != expected:
            bad_headers.append(actual)
    return bad_headers


def find_sentinel(table: ScoreTable) -> int:
    """Index of the END sentinel row, checking line numbers on the way.

    Raises
    ------
    ScoreStructureError
        If a line number is not the next positive whole number, the END
        row is missing, or the score has no notes.
    """
    for index in range(len(table.rows)):
        text = table.text(index, LINE_NUMBER_COL)
        if text.lower() == SENTINEL_TEXT:
            if index == 0:
                msg = (
                    f"The score has no notes: the word END was found at row {_sheet_row(index)}, "
                    "directly below the header.\nPlease list at least one note before the END row."
                )
                raise ScoreStructureError(msg, row=_sheet_row(index), column=EXPECTED_HEADERS[LINE_NUMBER_COL])
            return index
        if parse_positive_int(text) != index + 1:
            msg = (
                f"There was an invalid value detected in the Line Number column, at row {_sheet_row(index)}.\n"
                "Please only provide positive whole numbers, counting up by one from 1, as the values for the "
                "line numbers.\nOnce the last line number has been placed, input the word END in the cell "
                "directly below it."
            )
            raise ScoreStructureError(msg, row=_sheet_row(index), column=EXPECTED_HEADERS[LINE_NUMBER_COL])

    msg = (
        "No END row was found in the Line Number column.\n"
        "Once the last line number has been placed, input the word END in the cell directly below it."
    )
    raise ScoreStructureError(msg, column=EXPECTED_HEADERS[LINE_NUMBER_COL])


def _check_notes(table: ScoreTable, sentinel: int) -> None:
    for index in range(sentinel):
        if not is_note_name(table.text(index, NOTE_COL)):
            msg = (
                f"There was an invalid value detected in the Note column, at row {_sheet_row(index)}. "
                "Please make sure the notes have the following structure:\n"
                "Letter - Number - # (optional sharp)\n"
                "Please make sure a note value is present for every number in the line number column."
            )
            raise ScoreStructureError(msg, row=_sheet_row(index), column=EXPECTED_HEADERS[NOTE_COL])


def _check_durations(table: ScoreTable, sentinel: int) -> None:
    for index in range(sentinel):
        if parse_duration(table.text(index, DURATION_COL)) is None:
            msg = (
                f"There was an invalid value detected in the Duration column, at row {_sheet_row(index)}.\n"
                "Please only provide a positive number as the values for the durations. These can be "
                "fractional numbers (e.g. 1/4) or decimal numbers, and denominators cannot be 0."
            )
            raise ScoreStructureError(msg, row=_sheet_row(index), column=EXPECTED_HEADERS[DURATION_COL])


def _check_include_columns(table: ScoreTable, sentinel: int) -> None:
    for index in range(sentinel):
        for col, ordinal in INCLUDE_COLUMNS:
            if parse_flag(table.text(index, col)) is None:
                msg = (
                    f"There was an invalid value detected in the {ordinal} Include column "
                    f"(Column {column_letter(col)}), at row {_sheet_row(index)}. Please make sure there are "
                    "only Y and N values in the column (it is not case sensitive)."
                )
                raise ScoreStructureError(msg, row=_sheet_row(index), column=EXPECTED_HEADERS[col])


def _repair_last_entry(table: ScoreTable, sentinel: int) -> None:
    # IOI and articulation need a following note, which the last one lacks
    last = sentinel - 1
    if parse_flag(table.text(last, INCLUDE_TL_COL)) is False and parse_flag(table.text(last, INCLUDE_ART_COL)) is False:
        return

    table.set_cell(last, INCLUDE_TL_COL, "N")
    table.set_cell(last, INCLUDE_ART_COL, "N")
    row = _sheet_row(last)
    logger.info("Set Include TL and Include Art. to N on score row %d", row)
    msg = (
        "The last values in the Include TL and Include Art. columns must always be N, given those variables "
        "cannot be generated for the last note. This has been automatically changed now. Please run the "
        "analysis again."
    )
    raise ScoreAutoRepaired(msg, table=table, row=row)


def _check_spacing(table: ScoreTable, sentinel: int) -> None:
    for index in range(sentinel):
        if parse_positive_float(table.text(index, SPACE_BARLINE_COL)) is None:
            msg = (
                f"There was an invalid value detected in the Space for Barline column, at row "
                f"{_sheet_row(index)}.\nPlease only provide a positive number as the values for the space "
                "for barline."
            )
            raise ScoreStructureError(msg, row=_sheet_row(index), column=EXPECTED_HEADERS[SPACE_BARLINE_COL])


def _check_graph_values(table: ScoreTable) -> tuple[int, int, int]:
    values: list[int] = []
    for col, label in (
        (GRAPH_WIDTH_COL, "graph width"),
        (VEL_GRAPH_WIDTH_COL, "velocity graph width"),
        (X_AXIS_LIMIT_COL, "X-axis limit"),
    ):
        value = parse_positive_int(table.text(0, col))
        if value is None:
            msg = (
                f"There was an invalid value detected in the {EXPECTED_HEADERS[col]} column "
                f"(column {column_letter(col)}), at row 2.\nPlease only provide a positive whole number as "
                f"the value for the {label}.\nNote that only the first number below the column header is "
                "considered."
            )
            raise ScoreStructureError(msg, row=2, column=EXPECTED_HEADERS[col])
        values.append(value)
    return values[0], values[1], values[2]


def _build_entries(table: ScoreTable, sentinel: int) -> tuple[ScoreEntry, ...]:
    entries: list[ScoreEntry] = []
    for index in range(sentinel):
        flags = [parse_flag(table.text(index, col)) is True for col, _ in INCLUDE_COLUMNS]
        entries.append(
            ScoreEntry(
                line_number=index + 1,
                pitch=normalize_note_name(table.text(index, NOTE_COL)),
                duration=parse_duration(table.text(index, DURATION_COL)) or 0.0,
                include=flags[0],
                include_tone_lengthening=flags[1],
                include_dynamics=flags[2],
                include_articulation=flags[3],
                include_note_duration=flags[4],
                barline_spacing=parse_positive_float(table.text(index, SPACE_BARLINE_COL)) or 0.0,
            )
        )
    return tuple(entries)


def validate_score(table: ScoreTable) -> Score:
    """Validate a raw score table and parse it into a Score.

    Parameters
    ----------
    table : ScoreTable
        The raw table. It is only modified when the last entry's Include TL
        or Include Art. flag has to be corrected.

    Returns
    -------
    Score
        The typed, immutable score.

    Raises
    ------
    ScoreStructureError
        On the first rule violation, with the offending row and column.
    ScoreAutoRepaired
        When the last entry's flags were corrected; the caller should save
        ``notice.table`` and run again.

    Examples
    --------
    >>> table = ScoreTable.from_rows([
    ...     list(EXPECTED_HEADERS),
    ...     ["1", "C4", "1/4", "Y", "Y", "Y", "Y", "Y", "1", "800", "800", "20"],
    ...     ["2", "d4", "0.25", "Y", "N", "Y", "N", "Y", "1"],
    ...     ["END"],
    ... ])
    >>> score = validate_score(table)
    >>> [entry.pitch for entry in score.entries]
    ['C4', 'D4']
    """
    bad_headers = check_headers(table)
    if bad_headers:
        listed = "".join(f"\n -{header}" for header in bad_headers)
        msg = (
            f"The given score header structure is invalid. The following headers:{listed}\n"
            "do not follow the structure. Please use the sheet reader to generate a score sheet with proper "
            "headers."
        )
        raise ScoreStructureError(msg, row=1, bad_headers=bad_headers)

    sentinel = find_sentinel(table)
    _check_notes(table, sentinel)
    _check_durations(table, sentinel)
    _check_include_columns(table, sentinel)
    _repair_last_entry(table, sentinel)
    _check_spacing(table, sentinel)
    graph_width, velocity_graph_width, x_axis_limit = _check_graph_values(table)

    return Score(
        entries=_build_entries(table, sentinel),
        graph_width=graph_width,
        velocity_graph_width=velocity_graph_width,
        x_axis_limit=x_axis_limit,
    )
