"""Score table loading and saving.

The reference score arrives as a 12-column table exported from a
spreadsheet. This module reads and writes that table as CSV and ties the
validator to the file so auto-repairs are persisted.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from performance_grader.errors import ScoreAutoRepaired

if TYPE_CHECKING:
    from performance_grader.models import Score

logger = logging.getLogger(__name__)

EXPECTED_HEADERS: tuple[str, ...] = (
    "Line number",
    "Note",
    "Duration",
    "Include? (Y/N)",
    "Include TL",
    "Include Dyn.",
    "Include Art.",
    "Include N.D.",
    "Space for barline",
    "Graph Width",
    "Vel. Graph Width",
    "X-axis limit",
)

# 0-based column positions
LINE_NUMBER_COL = 0
NOTE_COL = 1
DURATION_COL = 2
INCLUDE_COL = 3
INCLUDE_TL_COL = 4
INCLUDE_DYN_COL = 5
INCLUDE_ART_COL = 6
INCLUDE_ND_COL = 7
SPACE_BARLINE_COL = 8
GRAPH_WIDTH_COL = 9
VEL_GRAPH_WIDTH_COL = 10
X_AXIS_LIMIT_COL = 11

SENTINEL_TEXT = "end"


def column_letter(col: int) -> str:
    """Spreadsheet letter of a 0-based column index.

    Examples
    --------
    >>> column_letter(0)
    'A'
    >>> column_letter(27)
    'AB'
    """
    letters = ""
    col += 1
    while col > 0:
        col, remainder = divmod(col - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


@dataclass
class ScoreTable:
    """Raw score table: a header row and data rows of unparsed cells.

    Cells may be strings, numbers or None, as handed over by a
    spreadsheet reader; whole-number floats read as integers. Row ``i`` of
    ``rows`` is spreadsheet row ``i + 2``.

    Parameters
    ----------
    header : list[Any]
        Header cells.
    rows : list[list[Any]]
        Data rows, including the END sentinel row and anything after it.
    """

    header: list[Any]
    rows: list[list[Any]]

    @classmethod
    def from_rows(cls, rows: list[list[Any]]) -> ScoreTable:
        """Build a table from rows where the first row is the header."""
        if not rows:
            return cls(header=[], rows=[])
        return cls(header=list(rows[0]), rows=[list(row) for row in rows[1:]])

    def text(self, row_index: int, col: int) -> str:
        """Trimmed text of a data cell; missing cells read as empty."""
        if row_index >= len(self.rows):
            return ""
        row = self.rows[row_index]
        if col >= len(row) or row[col] is None:
            return ""
        value = row[col]
        if isinstance(value, float) and value.is_integer():
            # Spreadsheet readers hand whole numbers over as floats
            return str(int(value))
        return str(value).strip()

    def header_text(self, col: int) -> str:
        if col >= len(self.header) or self.header[col] is None:
            return ""
        return str(self.header[col]).strip()

    def set_cell(self, row_index: int, col: int, value: Any) -> None:
        row = self.rows[row_index]
        if col >= len(row):
            row.extend([""] * (col + 1 - len(row)))
        row[col] = value

    def to_rows(self) -> list[list[Any]]:
        """Header plus data rows, as written to disk."""
        return [list(self.header)] + [list(row) for row in self.rows]


def read_score_table(path: str | Path) -> ScoreTable:
    """Read a score table from a CSV file.

    Parameters
    ----------
    path : str | Path
        Path to the CSV export of the score sheet.

    Returns
    -------
    ScoreTable
        The raw table, not yet validated.
    """
    path = Path(path)
    with path.open(newline="", encoding="utf-8-sig") as f:
        rows = [row for row in csv.reader(f)]
    return ScoreTable.from_rows(rows)


def write_score_table(path: str | Path, table: ScoreTable) -> None:
    """Write a score table back to CSV."""
    path = Path(path)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerows(table.to_rows())


def load_score(path: str | Path) -> Score:
    """Read and validate a score CSV file.

    When the validator auto-repairs the table, the corrected table is
    written back to ``path`` before the notice is re-raised, so the next
    run sees the fixed file.

    Parameters
    ----------
    path : str | Path
        Path to the CSV export of the score sheet.

    Returns
    -------
    Score
        The validated score.

    Raises
    ------
    ScoreStructureError
        If the table is malformed.
    ScoreAutoRepaired
        If the table was corrected and saved; re-run the analysis.
    """
    from performance_grader.score.validator import validate_score

    table = read_score_table(path)
    try:
        return validate_score(table)
    except ScoreAutoRepaired as notice:
        write_score_table(path, notice.table)
        logger.info("Saved auto-repaired score table to %s", path)
        raise
