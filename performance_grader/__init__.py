"""Performance grader: align recorded takes to a reference score.

This library validates a reference score sheet, aligns each recorded take
against it with a forward/backward two-pass matcher that recovers from one
wrong-note excursion, and computes per-note timing, dynamics and
articulation deviations.

Examples
--------
>>> from performance_grader import analyze_files
>>> report = analyze_files("score.csv", ["take1.csv", "take2.csv"])  # doctest: +SKIP
>>> report.bad_takes  # doctest: +SKIP
['take2']
>>> report.deviations_for("take1").velocity.baseline  # doctest: +SKIP
71.5
"""

from performance_grader.alignment import AlignmentAnnotation, AlignmentResult, align_take
from performance_grader.api import AnalysisReport, analyze_files, analyze_takes
from performance_grader.errors import (
    EventFormatError,
    GraderError,
    MetricUnavailableError,
    ScoreAutoRepaired,
    ScoreStructureError,
)
from performance_grader.models import (
    EventKind,
    PerformanceEvent,
    PerformanceTake,
    Score,
    ScoreEntry,
)
from performance_grader.score import load_score, validate_score

__all__ = [
    "AlignmentAnnotation",
    "AlignmentResult",
    "AnalysisReport",
    "EventFormatError",
    "EventKind",
    "GraderError",
    "MetricUnavailableError",
    "PerformanceEvent",
    "PerformanceTake",
    "Score",
    "ScoreAutoRepaired",
    "ScoreEntry",
    "ScoreStructureError",
    "align_take",
    "analyze_files",
    "analyze_takes",
    "load_score",
    "validate_score",
]
