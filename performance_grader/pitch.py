"""Note name grammar and MIDI note conversion.

Score sheets and performance tables both spell notes as a letter, an
octave digit and an optional trailing sharp (e.g. "C4", "f3#"). This module
holds that grammar and the conversion from MIDI numbers to note names.
"""

from __future__ import annotations

import re

# Letter + octave (0-7) + optional sharp, matched case-insensitively
NOTE_NAME_RE = re.compile(r"^([A-Ga-g])([0-7])(#?)$")

# (letter, sharp) per pitch class, sharp-only spelling
PC_TO_NOTE: tuple[tuple[str, bool], ...] = (
    ("C", False),
    ("C", True),
    ("D", False),
    ("D", True),
    ("E", False),
    ("F", False),
    ("F", True),
    ("G", False),
    ("G", True),
    ("A", False),
    ("A", True),
    ("B", False),
)

MIN_OCTAVE = 0
MAX_OCTAVE = 7


def is_note_name(text: str | None) -> bool:
    """Check whether text follows the note grammar.

    Parameters
    ----------
    text : str | None
        Candidate note name, already trimmed.

    Returns
    -------
    bool
        True for 2 or 3 character names such as "A0", "c4" or "G7#".

    Examples
    --------
    >>> is_note_name("c4#")
    True
    >>> is_note_name("C#4")
    False
    >>> is_note_name("C8")
    False
    """
    if not text:
        return False
    return NOTE_NAME_RE.match(text) is not None


def normalize_note_name(text: str) -> str:
    """Return the canonical (upper-case, trimmed) spelling of a note name.

    Parameters
    ----------
    text : str
        Note name in any case.

    Returns
    -------
    str
        Upper-cased note name.

    Raises
    ------
    ValueError
        If the text does not follow the note grammar.

    Examples
    --------
    >>> normalize_note_name(" f3# ")
    'F3#'
    """
    stripped = text.strip()
    if not is_note_name(stripped):
        msg = f"Invalid note name: {text!r}"
        raise ValueError(msg)
    return stripped.upper()


def notes_equal(first: str | None, second: str | None) -> bool:
    """Compare two note names case-insensitively.

    Returns False when either side is missing.
    """
    if first is None or second is None:
        return False
    return first.strip().lower() == second.strip().lower()


def midi_to_note_name(midi_note: int) -> str:
    """Convert a MIDI note number to a note name.

    Parameters
    ----------
    midi_note : int
        MIDI note number (C4 = 60).

    Returns
    -------
    str
        Note name in score spelling, sharp last (e.g., "C4#").

    Raises
    ------
    ValueError
        If the note falls outside octaves 0-7.

    Examples
    --------
    >>> midi_to_note_name(60)
    'C4'
    >>> midi_to_note_name(70)
    'A4#'
    """
    octave = midi_note // 12 - 1
    if not MIN_OCTAVE <= octave <= MAX_OCTAVE:
        msg = f"MIDI note {midi_note} is outside octaves {MIN_OCTAVE}-{MAX_OCTAVE}"
        raise ValueError(msg)
    letter, sharp = PC_TO_NOTE[midi_note % 12]
    return f"{letter}{octave}{'#' if sharp else ''}"
