"""Per-note timing derived from event timestamps.

Event tables produced by the converter usually carry IOI, articulation and
note duration columns already. When they do not, this module fills them in
from the onset and release timestamps of the take.
"""

from __future__ import annotations

from dataclasses import replace

from performance_grader.models import EventKind, PerformanceEvent, PerformanceTake
from performance_grader.pitch import notes_equal


def _find_release(events: tuple[PerformanceEvent, ...], onset_index: int) -> PerformanceEvent | None:
    """First release of the same pitch after an onset, before END_OF_STREAM."""
    pitch = events[onset_index].pitch
    for event in events[onset_index + 1 :]:
        if event.kind is EventKind.END_OF_STREAM:
            return None
        if event.is_release and notes_equal(event.pitch, pitch):
            return event
    return None


def derive_note_timing(take: PerformanceTake) -> PerformanceTake:
    """Fill in missing IOI, articulation and note duration values.

    For each sounding note:

    - IOI is the time from its onset to the next sounding onset;
    - note duration is the time from its onset to its release;
    - articulation is the time from its release to the next onset
      (negative when the notes overlap).

    Values already present on an event are kept. The last note has no IOI
    or articulation.

    Parameters
    ----------
    take : PerformanceTake
        The take, possibly without timing values.

    Returns
    -------
    PerformanceTake
        A new take with timing values filled in.

    Examples
    --------
    >>> from performance_grader.models import PerformanceEvent as E
    >>> take = PerformanceTake("t", (
    ...     E(EventKind.NOTE_ON, "C4", 80, millis=0.0),
    ...     E(EventKind.NOTE_ON, "C4", 0, millis=400.0),
    ...     E(EventKind.NOTE_ON, "D4", 80, millis=500.0),
    ...     E(EventKind.END_OF_STREAM, millis=900.0),
    ... ))
    >>> first = derive_note_timing(take).events[0]
    >>> first.ioi_millis, first.note_duration_millis, first.articulation_millis
    (500.0, 400.0, 100.0)
    """
    events = list(take.events)
    notes = take.sounding_notes()

    for position, (index, event) in enumerate(notes):
        next_onset = notes[position + 1][1].millis if position + 1 < len(notes) else None
        release = _find_release(take.events, index)

        ioi = event.ioi_millis
        if ioi is None and next_onset is not None:
            ioi = next_onset - event.millis

        duration = event.note_duration_millis
        if duration is None and release is not None:
            duration = release.millis - event.millis

        articulation = event.articulation_millis
        if articulation is None and release is not None and next_onset is not None:
            articulation = next_onset - release.millis

        events[index] = replace(
            event,
            ioi_millis=ioi,
            note_duration_millis=duration,
            articulation_millis=articulation,
        )

    return PerformanceTake(name=take.name, events=tuple(events))
