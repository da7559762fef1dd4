"""Shared builders for score tables and takes."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest

from performance_grader.models import EventKind, PerformanceEvent, PerformanceTake, Score
from performance_grader.score.table import EXPECTED_HEADERS, ScoreTable
from performance_grader.score.validator import validate_score

SCALE = ["C4", "D4", "E4", "F4", "G4", "A4", "B4", "C5"]


def build_score_rows(
    pitches: Sequence[str],
    durations: Sequence[str] | None = None,
    graph_values: Sequence[str] = ("800", "600", "20"),
) -> list[list[str]]:
    """Header, one row per pitch (all flags Y except the last note's TL/Art.), END."""
    rows: list[list[str]] = [list(EXPECTED_HEADERS)]
    for index, pitch in enumerate(pitches):
        last = index == len(pitches) - 1
        row = [
            str(index + 1),
            pitch,
            durations[index] if durations else "1/4",
            "Y",
            "N" if last else "Y",
            "Y",
            "N" if last else "Y",
            "Y",
            "1",
        ]
        if index == 0:
            row.extend(graph_values)
        rows.append(row)
    rows.append(["END"])
    return rows


def build_take(
    pitches: Sequence[str],
    name: str = "take",
    iois: Sequence[float] | None = None,
    velocities: Sequence[int] | None = None,
    hold: float = 400.0,
) -> PerformanceTake:
    """Take with a start marker, a note-on/zero-velocity note-on pair per pitch, and END."""
    events = [PerformanceEvent(EventKind.START_OF_STREAM)]
    onset = 0.0
    for index, pitch in enumerate(pitches):
        velocity = velocities[index] if velocities else 64
        events.append(PerformanceEvent(EventKind.NOTE_ON, pitch=pitch, velocity=velocity, millis=onset))
        events.append(PerformanceEvent(EventKind.NOTE_ON, pitch=pitch, velocity=0, millis=onset + hold))
        onset += iois[index] if iois else 500.0
    events.append(PerformanceEvent(EventKind.END_OF_STREAM, millis=onset))
    return PerformanceTake(name=name, events=tuple(events))


def note_index(position: int) -> int:
    """Event index of the note-on of the given note in a take from build_take."""
    return 1 + 2 * position


@pytest.fixture
def make_table() -> Callable[..., ScoreTable]:
    def _make(pitches: Sequence[str] = SCALE[:6], **kwargs) -> ScoreTable:
        return ScoreTable.from_rows(build_score_rows(pitches, **kwargs))

    return _make


@pytest.fixture
def make_score(make_table) -> Callable[..., Score]:
    def _make(pitches: Sequence[str] = SCALE[:6], **kwargs) -> Score:
        return validate_score(make_table(pitches, **kwargs))

    return _make


@pytest.fixture
def scale_score(make_score) -> Score:
    return make_score(SCALE[:7])
