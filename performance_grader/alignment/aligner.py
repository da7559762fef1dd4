"""Two-pass note alignment.

This module matches the sounding notes of a take against the score. The
forward pass walks both sequences from the start until the first wrong
note. The backward pass then walks both from the end towards that point,
so a single contiguous wrong-note excursion is bracketed between the two
scan fronts. A second divergence met by the backward pass fails the take.

Both passes are linear in the number of events; no edit-distance search
is performed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from performance_grader.alignment.models import (
    AlignmentAnnotation,
    AlignmentResult,
    Direction,
)
from performance_grader.models import EventKind
from performance_grader.pitch import notes_equal

if TYPE_CHECKING:
    from performance_grader.models import PerformanceTake, Score, ScoreEntry

logger = logging.getLogger(__name__)

Annotations = list[AlignmentAnnotation | None]


def _match(event_index: int, entry: ScoreEntry, direction: Direction) -> AlignmentAnnotation:
    return AlignmentAnnotation(
        event_index=event_index,
        direction=direction,
        line_number=entry.line_number,
        include=entry.include,
        duration=entry.duration,
    )


def _error(event_index: int, direction: Direction) -> AlignmentAnnotation:
    return AlignmentAnnotation(event_index=event_index, direction=direction, error=True)


def forward_pass(take: PerformanceTake, score: Score, annotations: Annotations) -> int | None:
    """Match the take against the score from the start.

    Reaching the END sentinel of the score restarts matching at line 1, so
    several attempts recorded back to back in one take are all matched.

    Parameters
    ----------
    take : PerformanceTake
        The take to align.
    score : Score
        The validated score.
    annotations : list[AlignmentAnnotation | None]
        One slot per event; filled in place.

    Returns
    -------
    int | None
        Index of the first mismatching event, or None if the take reached
        END_OF_STREAM without one.
    """
    score_cursor = 0
    for index, event in enumerate(take.events):
        if event.kind is EventKind.END_OF_STREAM:
            break
        if event.kind is EventKind.NOTE_ON and event.velocity == 0:
            logger.debug("%s: zero-velocity note-on skipped at event %d", take.name, index)
            continue
        if not event.is_sounding:
            continue

        if score.row(score_cursor).is_sentinel:
            logger.debug("%s: score restarted at event %d", take.name, index)
            score_cursor = 0

        entry = score.entries[score_cursor]
        if notes_equal(event.pitch, entry.pitch):
            annotations[index] = _match(index, entry, "forward")
            score_cursor += 1
        else:
            annotations[index] = _error(index, "forward")
            return index
    return None


def backward_pass(
    take: PerformanceTake,
    score: Score,
    annotations: Annotations,
    stop_index: int = -1,
) -> int | None:
    """Match the take against the score from the end.

    The take cursor starts on the last event and the score cursor on the
    last entry. Non-sounding events move only the take cursor; the END
    sentinel moves only the score cursor. Stepping back past line 1 lands
    on the sentinel, mirroring the forward restart.

    Parameters
    ----------
    take : PerformanceTake
        The take to align.
    score : Score
        The validated score.
    annotations : list[AlignmentAnnotation | None]
        One slot per event; filled in place.
    stop_index : int
        Event index where the forward pass diverged. The scan stops
        successfully once the take cursor reaches it.

    Returns
    -------
    int | None
        Index of the mismatching event, or None if the scan reached the
        forward divergence or START_OF_STREAM without one.
    """
    take_cursor = len(take.events) - 1
    score_cursor = len(score.entries) - 1

    while take_cursor > stop_index:
        event = take.events[take_cursor]
        if event.kind is EventKind.START_OF_STREAM:
            break
        if not event.is_sounding:
            take_cursor -= 1
            continue

        if score_cursor < 0:
            score_cursor = len(score.entries)
        if score.row(score_cursor).is_sentinel:
            logger.debug("%s: backward pass skipped END sentinel at event %d", take.name, take_cursor)
            score_cursor -= 1
            continue

        entry = score.entries[score_cursor]
        if notes_equal(event.pitch, entry.pitch):
            annotations[take_cursor] = _match(take_cursor, entry, "backward")
            score_cursor -= 1
            take_cursor -= 1
        else:
            annotations[take_cursor] = _error(take_cursor, "backward")
            return take_cursor
    return None


def align_take(take: PerformanceTake, score: Score) -> AlignmentResult:
    """Align one take against the score.

    Parameters
    ----------
    take : PerformanceTake
        The recorded performance.
    score : Score
        The validated reference score.

    Returns
    -------
    AlignmentResult
        Success flag and one annotation slot per event. On failure the
        annotations written so far are kept for inspection.
    """
    annotations: Annotations = [None] * len(take.events)

    forward_error = forward_pass(take, score, annotations)
    if forward_error is None:
        logger.info("%s: aligned without errors", take.name)
        return AlignmentResult(take=take, success=True, annotations=tuple(annotations))

    logger.info("%s: mismatch at event %d, resynchronizing from the end", take.name, forward_error)
    backward_error = backward_pass(take, score, annotations, stop_index=forward_error)
    success = backward_error is None
    if success:
        logger.info("%s: resynchronized after one divergence", take.name)
    else:
        logger.warning("%s: second mismatch at event %d, alignment failed", take.name, backward_error)

    return AlignmentResult(
        take=take,
        success=success,
        annotations=tuple(annotations),
        forward_error_index=forward_error,
        backward_error_index=backward_error,
    )
