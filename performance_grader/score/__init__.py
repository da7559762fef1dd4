"""Reference score loading and validation.

This module turns the 12-column score sheet into a validated ``Score``,
reporting malformed cells with their row and column and auto-repairing the
last entry's Include TL / Include Art. flags.
"""

from performance_grader.score.table import (
    EXPECTED_HEADERS,
    ScoreTable,
    load_score,
    read_score_table,
    write_score_table,
)
from performance_grader.score.validator import (
    check_headers,
    parse_duration,
    validate_score,
)

__all__ = [
    "EXPECTED_HEADERS",
    "ScoreTable",
    "check_headers",
    "load_score",
    "parse_duration",
    "read_score_table",
    "validate_score",
    "write_score_table",
]
