"""Note alignment module for matching recorded takes to the score.

This module provides the two-pass aligner, its result models, and the
loaders that turn event tables into takes.
"""

from performance_grader.alignment.aligner import align_take, backward_pass, forward_pass
from performance_grader.alignment.events import (
    HEADER_ROWS,
    load_take_csv,
    parse_event_row,
    parse_event_rows,
)
from performance_grader.alignment.models import AlignmentAnnotation, AlignmentResult
from performance_grader.alignment.timing import derive_note_timing

__all__ = [
    "HEADER_ROWS",
    "AlignmentAnnotation",
    "AlignmentResult",
    "align_take",
    "backward_pass",
    "derive_note_timing",
    "forward_pass",
    "load_take_csv",
    "parse_event_row",
    "parse_event_rows",
]
