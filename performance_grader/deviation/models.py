"""Data models for per-note deviation results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
from numpy.typing import NDArray

MetricName = Literal["ioi", "velocity", "articulation", "note_duration", "model_ioi", "model_velocity"]


@dataclass(frozen=True)
class NoteValue:
    """One metric value for a matched note.

    Parameters
    ----------
    line_number : int
        Score line number of the note.
    millis : float
        Onset timestamp of the played note.
    value : float
        Deviation in percent (IOI, velocity) or raw milliseconds
        (articulation, note duration).
    barline_spacing : float
        Layout hint copied from the score entry.
    raw : float | None
        The sample the deviation was computed from (IOI or velocity).
    """

    line_number: int
    millis: float
    value: float
    barline_spacing: float
    raw: float | None = None


@dataclass(frozen=True)
class MetricSeries:
    """Values of one metric for one take.

    Attributes
    ----------
    metric : MetricName
        Which metric the series holds.
    points : tuple[NoteValue, ...]
        Per-note values, in take order.
    baseline : float | None
        Mean or target IOI, or mean velocity; None for raw metrics.
    reason : str | None
        Why the metric is unavailable; None when it is available.
    """

    metric: MetricName
    points: tuple[NoteValue, ...] = ()
    baseline: float | None = None
    reason: str | None = None

    @classmethod
    def unavailable(cls, metric: MetricName, reason: str) -> MetricSeries:
        """Series signalling that a take has no data for a metric."""
        return cls(metric=metric, reason=reason)

    @property
    def available(self) -> bool:
        return self.reason is None

    def values(self) -> NDArray[np.float64]:
        return np.array([point.value for point in self.points], dtype=np.float64)

    def by_line(self) -> dict[int, float]:
        """Map score line number to value (last occurrence wins)."""
        return {point.line_number: point.value for point in self.points}


@dataclass(frozen=True)
class TakeDeviations:
    """All deviation metrics of one successfully aligned take.

    Attributes
    ----------
    name : str
        Take name.
    ioi : MetricSeries
        IOI deviation in percent; baseline is the mean or target IOI.
    velocity : MetricSeries
        Velocity deviation in percent; baseline is the mean velocity.
    articulation : MetricSeries
        Raw time between notes, in milliseconds.
    note_duration : MetricSeries
        Raw note duration, in milliseconds.
    uses_target_tempo : bool
        True when IOI deviations are relative to a target tempo.
    model_ioi : MetricSeries | None
        IOI deviation in percent from the model take, per line; None when
        no model take was given.
    model_velocity : MetricSeries | None
        Velocity deviation in percent from the model take, per line.
    """

    name: str
    ioi: MetricSeries
    velocity: MetricSeries
    articulation: MetricSeries
    note_duration: MetricSeries
    uses_target_tempo: bool = False
    model_ioi: MetricSeries | None = None
    model_velocity: MetricSeries | None = None

    def metrics(self) -> tuple[MetricSeries, ...]:
        """All series of the take, model comparisons last when present."""
        series = (self.ioi, self.velocity, self.articulation, self.note_duration)
        model_series = tuple(s for s in (self.model_ioi, self.model_velocity) if s is not None)
        return series + model_series
