"""Tick-duration to Alda length-token tables.

Two tables are derived from the sequence resolution (ticks per quarter):

  notes: whole down to 1/32, each with triplet / plain / dotted variants
  rests: the note table plus 1/64, 1/128, 1/256 and 1/512

Rests use the finer table so that gaps between notes stay close to the
source timing while notes are snapped to common lengths.

Token forms:
  ``4``   plain quarter
  ``4.``  dotted quarter (x 3/2)
  ``6``   quarter triplet (x 2/3, written as base * 3 / 2)
  ``2~8`` tie of several summands when no single entry matches
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

TIE = "~"

# (base token, factor, divisor) relative to one quarter note.
# Order matters: on tick collisions (tiny resolutions) the later entry wins.
_NOTE_LADDER = [
    (32, 1, 8),
    (16, 1, 4),
    (8, 1, 2),
    (4, 1, 1),
    (2, 2, 1),
]
_REST_EXTRAS = [
    (64, 1, 16),
    (128, 1, 32),
    (256, 1, 64),
    (512, 1, 128),
]


def calculate_ticks(resolution: int, factor: int, divisor: int) -> int:
    """Return ``resolution * factor / divisor`` rounded half up."""

    return (2 * resolution * factor + divisor) // (2 * divisor)


def triplet_token(base: int) -> str:
    """Alda writes a triplet of ``base`` as the length ``base * 3 / 2``."""

    return str(base * 3 // 2)


def note_lengths(resolution: int) -> Dict[int, str]:
    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")

    table: Dict[int, str] = {}

    def put(ticks: int, token: str) -> None:
        if ticks > 0:
            table[ticks] = token

    for base, factor, divisor in _NOTE_LADDER:
        put(calculate_ticks(resolution, factor * 2, divisor * 3), triplet_token(base))
        put(calculate_ticks(resolution, factor, divisor), str(base))
        put(calculate_ticks(resolution, factor * 3, divisor * 2), f"{base}.")

    # whole notes have no triplet form
    put(calculate_ticks(resolution, 4, 1), "1")
    put(calculate_ticks(resolution, 4 * 3, 2), "1.")

    return dict(sorted(table.items()))


def rest_lengths(resolution: int) -> Dict[int, str]:
    table = dict(note_lengths(resolution))
    for base, factor, divisor in _REST_EXTRAS:
        ticks = calculate_ticks(resolution, factor, divisor)
        if ticks > 0:
            table[ticks] = str(base)
    return dict(sorted(table.items()))


def decompose(duration: int, table: Dict[int, str], *, min_entry: int = 0) -> List[int]:
    """Split ``duration`` into table entries, largest first.

    Greedy: take the largest entry that still fits until the remainder is
    smaller than the finest usable entry.  Entries below ``min_entry`` are
    never used, so the dropped remainder is always below the finest entry
    that is at least ``min_entry``.  The result is not guaranteed to use the
    fewest summands.
    """
    summands: List[int] = []
    remaining = duration
    for length in sorted(table, reverse=True):
        if length < min_entry:
            break
        while remaining >= length:
            summands.append(length)
            remaining -= length
    return summands


def join_tokens(summands: Iterable[int], table: Dict[int, str]) -> str:
    return TIE.join(table[length] for length in summands)


def is_triplet(token: str) -> bool:
    """True for triplet tokens such as ``6``, ``12`` or ``3``."""

    if token.endswith("."):
        return False
    value = int(token)
    return value & (value - 1) != 0


@dataclass(frozen=True)
class LengthTables:
    resolution: int
    notes: Dict[int, str]
    rests: Dict[int, str]
    min_rest_ticks: int

    @classmethod
    def for_resolution(
        cls, resolution: int, *, min_rest_ticks: Optional[int] = None
    ) -> "LengthTables":
        if min_rest_ticks is None:
            # a 1/256 note
            min_rest_ticks = calculate_ticks(resolution, 1, 64)
        return cls(
            resolution=resolution,
            notes=note_lengths(resolution),
            rests=rest_lengths(resolution),
            min_rest_ticks=min_rest_ticks,
        )

    @property
    def min_note_ticks(self) -> int:
        return min(self.notes)

    @property
    def shortest_rest(self) -> int:
        """Shortest gap that still prints as a rest."""

        usable = [ticks for ticks in self.rests if ticks >= self.min_rest_ticks]
        return min(usable, default=self.min_rest_ticks)

    def note_summands(self, ticks: int) -> List[int]:
        return decompose(ticks, self.notes)

    def rest_summands(self, ticks: int) -> List[int]:
        return decompose(ticks, self.rests, min_entry=self.min_rest_ticks)

    def note_length_for(self, press_ticks: int, gap_ticks: Optional[int]) -> Tuple[int, int]:
        """Quantize a held note.

        Returns ``(length_ticks, duration_percent)``.

        A note released before the next note-on (``gap_ticks`` away) takes the
        gap as its length when the gap is a single table entry; the shortened
        press then shows up in the duration percentage only.  Otherwise the
        pressed length is split into table entries (a tie when no single entry
        matches), dropping a remainder below the finest entry.  Presses
        shorter than the finest entry get that entry.
        """
        if gap_ticks is not None and gap_ticks in self.notes and press_ticks <= gap_ticks:
            length = gap_ticks
        elif press_ticks < self.min_note_ticks:
            length = self.min_note_ticks
        else:
            length = sum(self.note_summands(press_ticks))

        if length <= 0:
            return 0, 0
        duration = (press_ticks * 200 + length) // (2 * length)
        return length, duration
