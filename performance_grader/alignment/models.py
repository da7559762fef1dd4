"""Data models for note alignment.

This module defines the per-event annotations the aligner produces and the
alignment result handed to the deviation calculator.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from performance_grader.models import PerformanceEvent, PerformanceTake

Direction = Literal["forward", "backward"]


@dataclass(frozen=True)
class AlignmentAnnotation:
    """Alignment outcome attached to one event of a take.

    Parameters
    ----------
    event_index : int
        Index of the annotated event in the take.
    direction : Direction
        The pass that wrote the annotation.
    line_number : int | None
        Line number of the matched score entry; None for an error marker.
    include : bool | None
        General include flag of the matched entry.
    duration : float | None
        Duration of the matched entry, as a fraction of a whole note.
    error : bool
        True when this event is where a pass diverged from the score.
    """

    event_index: int
    direction: Direction
    line_number: int | None = None
    include: bool | None = None
    duration: float | None = None
    error: bool = False

    @property
    def matched(self) -> bool:
        return not self.error and self.line_number is not None


@dataclass(frozen=True)
class AlignmentResult:
    """Result of aligning one take against the score.

    Parameters
    ----------
    take : PerformanceTake
        The aligned take, unchanged.
    success : bool
        False when the backward pass found a second divergence.
    annotations : tuple[AlignmentAnnotation | None, ...]
        One slot per event of the take; None where nothing was written.
        Annotations written before a failure are kept.
    forward_error_index : int | None
        Event index where the forward pass diverged, if it did.
    backward_error_index : int | None
        Event index where the backward pass diverged, if it did.
    """

    take: PerformanceTake
    success: bool
    annotations: tuple[AlignmentAnnotation | None, ...]
    forward_error_index: int | None = None
    backward_error_index: int | None = None

    @property
    def name(self) -> str:
        return self.take.name

    @property
    def resynchronized(self) -> bool:
        """True when the backward pass ran."""
        return self.forward_error_index is not None

    def annotation_for(self, event_index: int) -> AlignmentAnnotation | None:
        return self.annotations[event_index]

    def error_indices(self) -> list[int]:
        """Indices of events carrying an error marker."""
        return [a.event_index for a in self.annotations if a is not None and a.error]

    def matched_notes(self) -> Iterator[tuple[PerformanceEvent, AlignmentAnnotation]]:
        """Yield (event, annotation) for every matched event, in take order."""
        for event, annotation in zip(self.take.events, self.annotations, strict=True):
            if annotation is not None and annotation.matched:
                yield event, annotation
