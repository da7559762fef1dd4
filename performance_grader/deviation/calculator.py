"""Timing, dynamics and articulation deviations of aligned takes.

This module turns a successful alignment into per-note metric values:

- IOI (tone lengthening): deviation in percent from the take's mean IOI or
  from a target tempo;
- velocity (dynamics): deviation in percent from the take's mean velocity;
- articulation and note duration: raw milliseconds, no deviation.

With a model take, IOI and velocity are also compared line by line with the
model performance (``((sample / model) - 1) * 100``).

Every metric is gated independently by the score entry's general include
flag and its own include flag.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import TYPE_CHECKING

import numpy as np

from performance_grader.deviation.models import MetricName, MetricSeries, NoteValue, TakeDeviations
from performance_grader.errors import MetricUnavailableError

if TYPE_CHECKING:
    from performance_grader.alignment.models import AlignmentResult
    from performance_grader.models import PerformanceEvent, Score, ScoreEntry

logger = logging.getLogger(__name__)

# Beats per whole note used to normalise IOIs. Mean-relative deviations
# count eighth notes, target-relative deviations count quarter notes.
MEAN_BEATS_PER_WHOLE = 8
TARGET_BEATS_PER_WHOLE = 4

MILLIS_PER_MINUTE = 60000.0

EntryFlag = Callable[["ScoreEntry"], bool]


def _includes_tone_lengthening(entry: ScoreEntry) -> bool:
    return entry.include_tone_lengthening


def _includes_dynamics(entry: ScoreEntry) -> bool:
    return entry.include_dynamics


def _includes_articulation(entry: ScoreEntry) -> bool:
    return entry.include_articulation


def _includes_note_duration(entry: ScoreEntry) -> bool:
    return entry.include_note_duration


def included_notes(
    result: AlignmentResult,
    score: Score,
    flag: EntryFlag,
) -> list[tuple[PerformanceEvent, ScoreEntry]]:
    """Matched sounding notes whose entry passes the general and metric flags.

    Parameters
    ----------
    result : AlignmentResult
        Alignment of the take.
    score : Score
        The score the take was aligned against.
    flag : Callable[[ScoreEntry], bool]
        The metric's include flag.

    Returns
    -------
    list[tuple[PerformanceEvent, ScoreEntry]]
        (event, matched entry) pairs in take order.
    """
    notes: list[tuple[PerformanceEvent, ScoreEntry]] = []
    for event, annotation in result.matched_notes():
        if not event.is_sounding or annotation.line_number is None:
            continue
        entry = score.entry_for_line(annotation.line_number)
        if entry.include and flag(entry):
            notes.append((event, entry))
    return notes


def calculate_mean_ioi(result: AlignmentResult, score: Score) -> float:
    """Mean IOI of a take per eighth note, in milliseconds.

    The summed IOIs of the tone-lengthening notes are divided by the number
    of eighth notes those notes span in the score.

    Raises
    ------
    MetricUnavailableError
        If no tone-lengthening note has an IOI value, or the
        IOIs sum to zero (simultaneous onsets).
    """
    notes = [
        (event, entry)
        for event, entry in included_notes(result, score, _includes_tone_lengthening)
        if event.ioi_millis is not None
    ]
    if not notes:
        msg = f"{result.name}: no tone-lengthening notes with an IOI"
        raise MetricUnavailableError(msg)

    iois = np.array([event.ioi_millis for event, _ in notes], dtype=np.float64)
    durations = np.array([entry.duration for _, entry in notes], dtype=np.float64)
    total_beats = float(durations.sum()) * MEAN_BEATS_PER_WHOLE
    mean_ioi = float(iois.sum()) / total_beats
    if not mean_ioi > 0:
        msg = f"{result.name}: mean IOI is {mean_ioi}, onsets do not advance"
        raise MetricUnavailableError(msg)
    return mean_ioi


def _percent_deviation(expected: float, sample: float) -> float:
    if expected == 0:
        msg = "Expected value is zero, deviation is undefined"
        raise MetricUnavailableError(msg)
    return ((sample - expected) / expected) * 100


def calculate_target_ioi(target_bpm: float) -> float:
    """Target IOI per beat, in milliseconds.

    Examples
    --------
    >>> calculate_target_ioi(120)
    500.0
    """
    if not math.isfinite(target_bpm) or target_bpm <= 0:
        msg = f"Target BPM must be a positive number, got {target_bpm}"
        raise ValueError(msg)
    return MILLIS_PER_MINUTE / target_bpm


def calculate_mean_ioi_deviation(mean_ioi: float, sample_ioi: float, duration: float) -> float:
    """Deviation of a sample IOI from the mean IOI, in percent.

    Parameters
    ----------
    mean_ioi : float
        Mean IOI per eighth note.
    sample_ioi : float
        IOI of the played note.
    duration : float
        Notated duration as a fraction of a whole note (0.25, 0.125, ...).

    Returns
    -------
    float
        Percent deviation from ``mean_ioi * duration * 8``.

    Examples
    --------
    >>> round(calculate_mean_ioi_deviation(500.0, 550.0, 0.25), 6)
    -45.0
    """
    expected = mean_ioi * (duration * MEAN_BEATS_PER_WHOLE)
    return _percent_deviation(expected, sample_ioi)


def calculate_target_ioi_deviation(target_ioi: float, sample_ioi: float, duration: float) -> float:
    """Deviation of a sample IOI from the target IOI, in percent.

    Unlike the mean-relative deviation the note length is counted in
    quarter notes (``duration * 4``).

    Examples
    --------
    >>> round(calculate_target_ioi_deviation(500.0, 600.0, 0.25), 6)
    20.0
    """
    expected = target_ioi * (duration * TARGET_BEATS_PER_WHOLE)
    return _percent_deviation(expected, sample_ioi)


def calculate_mean_velocity(result: AlignmentResult, score: Score) -> float:
    """Mean velocity of the dynamics notes of a take.

    Raises
    ------
    MetricUnavailableError
        If no dynamics note was matched.
    """
    notes = included_notes(result, score, _includes_dynamics)
    if not notes:
        msg = f"{result.name}: no dynamics notes"
        raise MetricUnavailableError(msg)
    return float(np.mean([event.velocity for event, _ in notes]))


def calculate_velocity_deviation(mean_velocity: float, sample_velocity: float) -> float:
    """Deviation of a sample velocity from the mean velocity, in percent.

    Returns exactly 0.0 when the sample equals the mean.

    Examples
    --------
    >>> calculate_velocity_deviation(64.0, 80.0)
    25.0
    >>> calculate_velocity_deviation(64.0, 64.0)
    0.0
    """
    if sample_velocity == mean_velocity:
        return 0.0
    if mean_velocity == 0:
        msg = "Mean velocity is zero"
        raise MetricUnavailableError(msg)
    return ((sample_velocity - mean_velocity) / mean_velocity) * 100


def _ratio_deviation(model_value: float, sample_value: float) -> float:
    if sample_value == model_value:
        return 0.0
    if model_value == 0:
        msg = "Model value is zero, deviation is undefined"
        raise MetricUnavailableError(msg)
    return ((sample_value / model_value) - 1) * 100


def calculate_model_ioi_deviation(model_ioi: float, sample_ioi: float) -> float:
    """Deviation of a sample IOI from the model take's IOI for the same line, in percent.

    No beat normalisation is applied: both IOIs belong to the same notated
    note. Returns exactly 0.0 when the two are equal.

    Examples
    --------
    >>> round(calculate_model_ioi_deviation(500.0, 600.0), 6)
    20.0
    """
    return _ratio_deviation(model_ioi, sample_ioi)


def calculate_model_velocity_deviation(model_velocity: float, sample_velocity: float) -> float:
    """Deviation of a sample velocity from the model take's velocity, in percent.

    Examples
    --------
    >>> calculate_model_velocity_deviation(80.0, 60.0)
    -25.0
    >>> calculate_model_velocity_deviation(72.0, 72.0)
    0.0
    """
    return _ratio_deviation(model_velocity, sample_velocity)


def model_reference(
    model: AlignmentResult,
    score: Score,
    flag: EntryFlag,
    value: Callable[[PerformanceEvent], float | None],
) -> dict[int, float]:
    """Values of the model take keyed by score line number.

    When the model plays a line more than once, its first performance of
    the line is the reference.

    Raises
    ------
    MetricUnavailableError
        If the model take failed alignment.
    """
    if not model.success:
        msg = f"model take {model.name!r} failed alignment"
        raise MetricUnavailableError(msg)
    reference: dict[int, float] = {}
    for event, entry in included_notes(model, score, flag):
        sample = value(event)
        if sample is not None:
            reference.setdefault(entry.line_number, sample)
    return reference


def _event_ioi(event: PerformanceEvent) -> float | None:
    return event.ioi_millis


def _event_velocity(event: PerformanceEvent) -> float | None:
    return float(event.velocity)


def _ioi_series(result: AlignmentResult, score: Score, target_bpm: float | None) -> MetricSeries:
    if target_bpm is not None:
        baseline = calculate_target_ioi(target_bpm)
        deviation = calculate_target_ioi_deviation
    else:
        baseline = calculate_mean_ioi(result, score)
        deviation = calculate_mean_ioi_deviation

    points = tuple(
        NoteValue(
            line_number=entry.line_number,
            millis=event.millis,
            value=deviation(baseline, event.ioi_millis, entry.duration),
            barline_spacing=entry.barline_spacing,
            raw=event.ioi_millis,
        )
        for event, entry in included_notes(result, score, _includes_tone_lengthening)
        if event.ioi_millis is not None
    )
    if not points:
        msg = f"{result.name}: no tone-lengthening notes with an IOI"
        raise MetricUnavailableError(msg)
    return MetricSeries(metric="ioi", points=points, baseline=baseline)


def _velocity_series(result: AlignmentResult, score: Score) -> MetricSeries:
    mean_velocity = calculate_mean_velocity(result, score)
    points = tuple(
        NoteValue(
            line_number=entry.line_number,
            millis=event.millis,
            value=calculate_velocity_deviation(mean_velocity, float(event.velocity)),
            barline_spacing=entry.barline_spacing,
            raw=float(event.velocity),
        )
        for event, entry in included_notes(result, score, _includes_dynamics)
    )
    return MetricSeries(metric="velocity", points=points, baseline=mean_velocity)


def _raw_series(
    result: AlignmentResult,
    score: Score,
    metric: MetricName,
    flag: EntryFlag,
    value: Callable[[PerformanceEvent], float | None],
) -> MetricSeries:
    points: list[NoteValue] = []
    for event, entry in included_notes(result, score, flag):
        raw = value(event)
        if raw is None:
            continue
        points.append(
            NoteValue(
                line_number=entry.line_number,
                millis=event.millis,
                value=raw,
                barline_spacing=entry.barline_spacing,
            )
        )
    if not points:
        msg = f"{result.name}: no {metric.replace('_', ' ')} values"
        raise MetricUnavailableError(msg)
    return MetricSeries(metric=metric, points=tuple(points))


def _model_series(
    result: AlignmentResult,
    model: AlignmentResult,
    score: Score,
    metric: MetricName,
    flag: EntryFlag,
    value: Callable[[PerformanceEvent], float | None],
    deviation: Callable[[float, float], float],
) -> MetricSeries:
    reference = model_reference(model, score, flag, value)
    points: list[NoteValue] = []
    for event, entry in included_notes(result, score, flag):
        sample = value(event)
        model_value = reference.get(entry.line_number)
        if sample is None or model_value is None:
            continue
        points.append(
            NoteValue(
                line_number=entry.line_number,
                millis=event.millis,
                value=deviation(model_value, sample),
                barline_spacing=entry.barline_spacing,
                raw=sample,
            )
        )
    if not points:
        msg = f"{result.name}: no lines shared with model take {model.name!r}"
        raise MetricUnavailableError(msg)
    return MetricSeries(metric=metric, points=tuple(points))


def _guarded(metric: MetricName, build: Callable[[], MetricSeries]) -> MetricSeries:
    try:
        return build()
    except MetricUnavailableError as exc:
        logger.warning("Metric %s unavailable: %s", metric, exc)
        return MetricSeries.unavailable(metric, str(exc))


def calculate_take_deviations(
    result: AlignmentResult,
    score: Score,
    target_bpm: float | None = None,
    model: AlignmentResult | None = None,
) -> TakeDeviations:
    """Compute the deviation metrics for a successfully aligned take.

    Parameters
    ----------
    result : AlignmentResult
        A successful alignment.
    score : Score
        The score the take was aligned against.
    target_bpm : float | None
        Target tempo. When given, IOI deviations are relative to
        ``60000 / target_bpm`` instead of the take's mean IOI.
    model : AlignmentResult | None
        Alignment of a model performance. When given, IOI and velocity
        are also compared note by note with the model, matched on score
        line number.

    Returns
    -------
    TakeDeviations
        Per-note values keyed by score line number. A metric without data
        is returned as an unavailable series rather than raising.

    Raises
    ------
    ValueError
        If the alignment failed or ``target_bpm`` is not positive.
    """
    if not result.success:
        msg = f"{result.name}: cannot compute deviations for a take that failed alignment"
        raise ValueError(msg)
    if target_bpm is not None:
        calculate_target_ioi(target_bpm)

    model_ioi: MetricSeries | None = None
    model_velocity: MetricSeries | None = None
    if model is not None:
        model_ioi = _guarded(
            "model_ioi",
            lambda: _model_series(
                result, model, score, "model_ioi", _includes_tone_lengthening, _event_ioi, calculate_model_ioi_deviation
            ),
        )
        model_velocity = _guarded(
            "model_velocity",
            lambda: _model_series(
                result,
                model,
                score,
                "model_velocity",
                _includes_dynamics,
                _event_velocity,
                calculate_model_velocity_deviation,
            ),
        )

    return TakeDeviations(
        name=result.name,
        ioi=_guarded("ioi", lambda: _ioi_series(result, score, target_bpm)),
        velocity=_guarded("velocity", lambda: _velocity_series(result, score)),
        articulation=_guarded(
            "articulation",
            lambda: _raw_series(
                result, score, "articulation", _includes_articulation, lambda e: e.articulation_millis
            ),
        ),
        note_duration=_guarded(
            "note_duration",
            lambda: _raw_series(
                result, score, "note_duration", _includes_note_duration, lambda e: e.note_duration_millis
            ),
        ),
        uses_target_tempo=target_bpm is not None,
        model_ioi=model_ioi,
        model_velocity=model_velocity,
    )
