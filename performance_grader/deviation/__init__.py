"""Per-note deviation metrics for aligned takes."""

from performance_grader.deviation.calculator import (
    calculate_mean_ioi,
    calculate_mean_ioi_deviation,
    calculate_mean_velocity,
    calculate_model_ioi_deviation,
    calculate_model_velocity_deviation,
    calculate_take_deviations,
    calculate_target_ioi,
    calculate_target_ioi_deviation,
    calculate_velocity_deviation,
    included_notes,
    model_reference,
)
from performance_grader.deviation.models import MetricSeries, NoteValue, TakeDeviations

__all__ = [
    "MetricSeries",
    "NoteValue",
    "TakeDeviations",
    "calculate_mean_ioi",
    "calculate_mean_ioi_deviation",
    "calculate_mean_velocity",
    "calculate_model_ioi_deviation",
    "calculate_model_velocity_deviation",
    "calculate_take_deviations",
    "calculate_target_ioi",
    "calculate_target_ioi_deviation",
    "calculate_velocity_deviation",
    "included_notes",
    "model_reference",
]
