"""Score and performance data models for performance-grader.

This module defines the validated reference score and the event stream of
a recorded take. Both are immutable once built: the score is produced by
the validator, takes by the event reader.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class RowKind(Enum):
    """Kind of a row in the score table."""

    DATA = "data"
    SENTINEL = "sentinel"


class EventKind(Enum):
    """Kind of an event in a take's event stream."""

    NOTE_ON = "note_on_c"
    NOTE_OFF = "note_off_c"
    OTHER = "other"
    END_OF_STREAM = "end_of_file"
    START_OF_STREAM = "start_track"

    @classmethod
    def from_label(cls, label: str) -> EventKind:
        """Map an event-table kind label to an EventKind.

        Unknown labels map to OTHER.

        Examples
        --------
        >>> EventKind.from_label(" Note_on_c ")
        <EventKind.NOTE_ON: 'note_on_c'>
        >>> EventKind.from_label("Control_c")
        <EventKind.OTHER: 'other'>
        """
        normalized = label.strip().lower()
        for kind in cls:
            if kind.value == normalized and kind is not cls.OTHER:
                return kind
        return cls.OTHER


@dataclass(frozen=True)
class ScoreEntry:
    """One expected note of the reference score.

    Parameters
    ----------
    line_number : int
        Position in the score, starting at 1.
    pitch : str
        Upper-cased note name (e.g., "C4", "F3#").
    duration : float
        Fraction of a whole note (0.25 is a quarter note).
    include : bool
        General include flag; a note with this unset counts for no metric.
    include_tone_lengthening : bool
        Whether the note contributes to the IOI metric.
    include_dynamics : bool
        Whether the note contributes to the velocity metric.
    include_articulation : bool
        Whether the note contributes to the articulation metric.
    include_note_duration : bool
        Whether the note contributes to the note duration metric.
    barline_spacing : float
        Layout hint for the graphs, passed through unchanged.
    """

    line_number: int
    pitch: str
    duration: float
    include: bool
    include_tone_lengthening: bool
    include_dynamics: bool
    include_articulation: bool
    include_note_duration: bool
    barline_spacing: float


@dataclass(frozen=True)
class ScoreRow:
    """A row of the score in table form: an entry or the END sentinel."""

    kind: RowKind
    entry: ScoreEntry | None = None

    @property
    def is_sentinel(self) -> bool:
        return self.kind is RowKind.SENTINEL


SENTINEL_ROW = ScoreRow(kind=RowKind.SENTINEL)


@dataclass(frozen=True)
class Score:
    """A validated reference score.

    Parameters
    ----------
    entries : tuple[ScoreEntry, ...]
        Expected notes, line numbers 1..N in order.
    graph_width : int
        Width of the deviation graphs.
    velocity_graph_width : int
        Width of the velocity graph.
    x_axis_limit : int
        Upper limit of the graphs' x axis.
    """

    entries: tuple[ScoreEntry, ...]
    graph_width: int
    velocity_graph_width: int
    x_axis_limit: int
    _by_line: dict[int, ScoreEntry] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_line", {entry.line_number: entry for entry in self.entries})

    def __len__(self) -> int:
        return len(self.entries)

    def row(self, index: int) -> ScoreRow:
        """Return the table row at a 0-based index; ``len(score)`` is the sentinel."""
        if index == len(self.entries):
            return SENTINEL_ROW
        return ScoreRow(kind=RowKind.DATA, entry=self.entries[index])

    def rows(self) -> Iterator[ScoreRow]:
        """Iterate over the data rows followed by the sentinel."""
        for index in range(len(self.entries) + 1):
            yield self.row(index)

    def entry_for_line(self, line_number: int) -> ScoreEntry:
        """Look up an entry by line number.

        Raises
        ------
        KeyError
            If no entry has this line number.
        """
        return self._by_line[line_number]


@dataclass(frozen=True)
class PerformanceEvent:
    """One event of a take's event stream.

    Parameters
    ----------
    kind : EventKind
        Event kind.
    pitch : str | None
        Note name, for note events.
    velocity : int
        MIDI velocity (0-127). A NOTE_ON with velocity 0 is a note-off.
    ticks : int
        Timestamp in MIDI ticks.
    millis : float
        Timestamp in milliseconds.
    ioi_millis : float | None
        Inter-onset interval to the next sounding note.
    articulation_millis : float | None
        Gap between this note's release and the next onset.
    note_duration_millis : float | None
        Time the note was held.
    """

    kind: EventKind
    pitch: str | None = None
    velocity: int = 0
    ticks: int = 0
    millis: float = 0.0
    ioi_millis: float | None = None
    articulation_millis: float | None = None
    note_duration_millis: float | None = None

    @property
    def is_sounding(self) -> bool:
        """True for a NOTE_ON with non-zero velocity."""
        return self.kind is EventKind.NOTE_ON and self.velocity > 0

    @property
    def is_release(self) -> bool:
        """True for NOTE_OFF or a zero-velocity NOTE_ON."""
        return self.kind is EventKind.NOTE_OFF or (self.kind is EventKind.NOTE_ON and self.velocity == 0)


@dataclass(frozen=True)
class PerformanceTake:
    """A recorded performance attempt.

    Parameters
    ----------
    name : str
        Identifier of the take (sheet or file name).
    events : tuple[PerformanceEvent, ...]
        Events after the header region, ending at END_OF_STREAM.
    """

    name: str
    events: tuple[PerformanceEvent, ...]

    def __len__(self) -> int:
        return len(self.events)

    def sounding_notes(self) -> list[tuple[int, PerformanceEvent]]:
        """Return (index, event) pairs of sounding note-ons before END_OF_STREAM."""
        notes: list[tuple[int, PerformanceEvent]] = []
        for index, event in enumerate(self.events):
            if event.kind is EventKind.END_OF_STREAM:
                break
            if event.is_sounding:
                notes.append((index, event))
        return notes
