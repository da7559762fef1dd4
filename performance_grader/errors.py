"""Exceptions raised by performance-grader.

Score problems are ``ValueError`` subclasses so callers that only care
about "bad input" can catch them generically. Alignment failures are not
exceptions; they are reported through ``AlignmentResult.success``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from performance_grader.score.table import ScoreTable


class GraderError(Exception):
    """Base class for all performance-grader errors."""


class ScoreStructureError(GraderError, ValueError):
    """The reference score table is malformed.

    Parameters
    ----------
    message : str
        Human-actionable description of the problem.
    row : int | None
        Spreadsheet row number of the offending cell (header is row 1).
    column : str | None
        Name of the offending column.
    bad_headers : list[str] | None
        Every header cell that did not match, for header errors.
    """

    def __init__(
        self,
        message: str,
        *,
        row: int | None = None,
        column: str | None = None,
        bad_headers: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.row = row
        self.column = column
        self.bad_headers = list(bad_headers) if bad_headers else []


class ScoreAutoRepaired(GraderError):
    """The score was corrected in place and the run must be restarted.

    Parameters
    ----------
    message : str
        Notice telling the user what was changed.
    table : ScoreTable
        The corrected table, ready to be persisted.
    row : int
        Spreadsheet row number of the corrected entry.
    """

    def __init__(self, message: str, *, table: ScoreTable, row: int) -> None:
        super().__init__(message)
        self.table = table
        self.row = row


class EventFormatError(GraderError, ValueError):
    """A performance event row could not be parsed."""

    def __init__(self, message: str, *, take: str, row: int) -> None:
        super().__init__(message)
        self.take = take
        self.row = row


class MetricUnavailableError(GraderError, ArithmeticError):
    """A metric has no data for a take (e.g. no included notes)."""
