"""High-level API for grading takes.

This module provides the run-level workflow: align every take against the
score, collect the takes that failed alignment, and compute deviations for
the others.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from performance_grader.alignment.aligner import align_take
from performance_grader.alignment.events import HEADER_ROWS, load_take_csv
from performance_grader.alignment.models import AlignmentResult
from performance_grader.alignment.timing import derive_note_timing
from performance_grader.deviation.calculator import calculate_take_deviations, calculate_target_ioi
from performance_grader.deviation.models import MetricSeries, TakeDeviations
from performance_grader.models import PerformanceTake, Score
from performance_grader.score.table import load_score

logger = logging.getLogger(__name__)

# Decimal places of values in serialised reports
REPORT_DECIMALS = 2


def _rounded(value: float | None) -> float | None:
    return None if value is None else round(value, REPORT_DECIMALS)


def _series_to_dict(series: MetricSeries) -> dict[str, Any]:
    return {
        "available": series.available,
        "reason": series.reason,
        "baseline": _rounded(series.baseline),
        "points": [
            {
                "line_number": point.line_number,
                "millis": point.millis,
                "value": _rounded(point.value),
                "raw": point.raw,
                "barline_spacing": point.barline_spacing,
            }
            for point in series.points
        ],
    }


def _alignment_to_dict(result: AlignmentResult) -> dict[str, Any]:
    events: list[dict[str, Any]] = []
    for annotation in result.annotations:
        if annotation is None:
            continue
        events.append(
            {
                "event_index": annotation.event_index,
                "direction": annotation.direction,
                "line_number": annotation.line_number,
                "include": annotation.include,
                "duration": annotation.duration,
                "error": annotation.error,
            }
        )
    return {"success": result.success, "annotations": events}


@dataclass(frozen=True)
class AnalysisReport:
    """Outcome of grading a set of takes.

    Attributes
    ----------
    score : Score
        The score every take was aligned against.
    alignments : tuple[AlignmentResult, ...]
        One result per take, in input order, failed takes included.
    deviations : tuple[TakeDeviations, ...]
        Metrics of the takes that aligned successfully.
    model : AlignmentResult | None
        Alignment of the model take, when one was given.
    """

    score: Score
    alignments: tuple[AlignmentResult, ...]
    deviations: tuple[TakeDeviations, ...]
    model: AlignmentResult | None = None

    @property
    def bad_takes(self) -> list[str]:
        """Names of the takes that failed alignment, the model take included."""
        results = self.alignments if self.model is None else (*self.alignments, self.model)
        return [result.name for result in results if not result.success]

    def deviations_for(self, name: str) -> TakeDeviations:
        for deviations in self.deviations:
            if deviations.name == name:
                return deviations
        msg = f"No deviations for take {name!r}"
        raise KeyError(msg)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable view for the reporting layer."""
        return {
            "bad_takes": self.bad_takes,
            "graph_width": self.score.graph_width,
            "velocity_graph_width": self.score.velocity_graph_width,
            "x_axis_limit": self.score.x_axis_limit,
            "takes": {result.name: _alignment_to_dict(result) for result in self.alignments},
            "model": None if self.model is None else {"name": self.model.name, **_alignment_to_dict(self.model)},
            "deviations": {
                deviations.name: {
                    "uses_target_tempo": deviations.uses_target_tempo,
                    "ioi": _series_to_dict(deviations.ioi),
                    "velocity": _series_to_dict(deviations.velocity),
                    "articulation": _series_to_dict(deviations.articulation),
                    "note_duration": _series_to_dict(deviations.note_duration),
                    **{
                        series.metric: _series_to_dict(series)
                        for series in (deviations.model_ioi, deviations.model_velocity)
                        if series is not None
                    },
                }
                for deviations in self.deviations
            },
        }


def analyze_takes(
    takes: Iterable[PerformanceTake],
    score: Score,
    *,
    target_bpm: float | None = None,
    model: PerformanceTake | None = None,
    derive_timing: bool = True,
) -> AnalysisReport:
    """Align and grade a set of takes against one score.

    A take that fails alignment is listed in ``bad_takes`` and excluded
    from the deviation metrics; the other takes are still processed.

    Parameters
    ----------
    takes : Iterable[PerformanceTake]
        The recorded takes.
    score : Score
        The validated score.
    target_bpm : float | None
        Target tempo for IOI deviations. Default is None (take mean).
    model : PerformanceTake | None
        A model performance of the score. When given, every take's IOI and
        velocity are also compared with the model's, line by line. A model
        that fails alignment is listed in ``bad_takes`` and its comparison
        series are unavailable.
    derive_timing : bool
        Fill in IOI, articulation and note duration values missing from
        the events. Default is True.

    Returns
    -------
    AnalysisReport
        Alignments, bad takes and deviations.
    """
    if target_bpm is not None:
        calculate_target_ioi(target_bpm)

    model_result: AlignmentResult | None = None
    if model is not None:
        if derive_timing:
            model = derive_note_timing(model)
        model_result = align_take(model, score)

    alignments: list[AlignmentResult] = []
    deviations: list[TakeDeviations] = []
    for take in takes:
        if derive_timing:
            take = derive_note_timing(take)
        result = align_take(take, score)
        alignments.append(result)
        if result.success:
            deviations.append(calculate_take_deviations(result, score, target_bpm=target_bpm, model=model_result))

    report = AnalysisReport(
        score=score,
        alignments=tuple(alignments),
        deviations=tuple(deviations),
        model=model_result,
    )
    if report.bad_takes:
        logger.warning("Takes that failed alignment: %s", ", ".join(report.bad_takes))
    return report


def analyze_files(
    score_path: str | Path,
    take_paths: Iterable[str | Path],
    *,
    target_bpm: float | None = None,
    model_path: str | Path | None = None,
    header_rows: int = HEADER_ROWS,
) -> AnalysisReport:
    """Grade CSV event tables against a CSV score sheet.

    Parameters
    ----------
    score_path : str | Path
        Path to the score sheet CSV.
    take_paths : Iterable[str | Path]
        Paths to the take CSVs; each take is named after its file stem.
    target_bpm : float | None
        Target tempo for IOI deviations.
    model_path : str | Path | None
        Path to the event table of a model performance.
    header_rows : int
        Header rows to skip in each take file. Default is 10.

    Returns
    -------
    AnalysisReport
        Alignments, bad takes and deviations.

    Raises
    ------
    ScoreStructureError
        If the score sheet is malformed.
    ScoreAutoRepaired
        If the score sheet was corrected and saved; run again.
    EventFormatError
        If a take file has an unreadable row.
    """
    score = load_score(score_path)
    takes = [load_take_csv(path, header_rows=header_rows) for path in take_paths]
    model = None if model_path is None else load_take_csv(model_path, header_rows=header_rows)
    return analyze_takes(takes, score, target_bpm=target_bpm, model=model)
