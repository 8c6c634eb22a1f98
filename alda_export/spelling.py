"""Spell MIDI note numbers as Alda pitch names under a key signature.

Alda applies the key signature to bare letters, so inside G major ``f``
already means F#.  A pitch the key does not alter is therefore written with
an explicit natural (``f_``), and the altered pitch is written bare.

Key signatures travel as ``"<signed sharps/flats>/<mode>"`` descriptors,
mode 0 = major, 1 = minor (``"2/0"`` is D major, ``"-3/1"`` C minor).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

BASE_NOTE_NAMES = ("c", "c+", "d", "d+", "e", "f", "f+", "g", "g+", "a", "a+", "b")

# Pitch-class re-lettering applied by each additional sharp (F C G D A E B)
# or flat (B E A D G C F).  Each step maps pitch class -> name.
_SHARP_STEPS = (
    {5: "f_", 6: "f"},   # G maj / E min
    {0: "c_", 1: "c"},   # D maj / B min
    {7: "g_", 8: "g"},   # A maj / F# min
    {2: "d_", 3: "d"},   # E maj / C# min
    {9: "a_", 10: "a"},  # B maj / G# min
    {4: "e_", 5: "e"},   # F# maj / D# min
    {11: "b_"},          # C# maj / A# min
)
_FLAT_STEPS = (
    {10: "b", 11: "b_"},  # F maj / D min
    {3: "e", 4: "e_"},    # Bb maj / G min
    {8: "a", 9: "a_"},    # Eb maj / C min
    {1: "d", 2: "d_"},    # Ab maj / F min
    {6: "g", 7: "g_"},    # Db maj / Bb min
    {0: "c_"},            # Gb maj / Eb min
    {4: "f", 5: "f_"},    # Cb maj / Ab min
)

# MIDI note 0 sits in octave -1; middle C (60) is octave 4.
REFERENCE_OCTAVE = -1

MAJOR = 0
MINOR = 1

_TONICS: Dict[Tuple[int, int], str] = {
    (0, MAJOR): "c",
    (1, MAJOR): "g",
    (2, MAJOR): "d",
    (3, MAJOR): "a",
    (4, MAJOR): "e",
    (5, MAJOR): "b",
    (6, MAJOR): "f :sharp",
    (7, MAJOR): "c :sharp",
    (-1, MAJOR): "f",
    (-2, MAJOR): "b :flat",
    (-3, MAJOR): "e :flat",
    (-4, MAJOR): "a :flat",
    (-5, MAJOR): "d :flat",
    (-6, MAJOR): "g :flat",
    (-7, MAJOR): "c :flat",
    (0, MINOR): "a",
    (1, MINOR): "e",
    (2, MINOR): "b",
    (3, MINOR): "f :sharp",
    (4, MINOR): "c :sharp",
    (5, MINOR): "g :sharp",
    (6, MINOR): "d :sharp",
    (7, MINOR): "a :sharp",
    (-1, MINOR): "d",
    (-2, MINOR): "g",
    (-3, MINOR): "c",
    (-4, MINOR): "f",
    (-5, MINOR): "b :flat",
    (-6, MINOR): "e :flat",
    (-7, MINOR): "a :flat",
}


class InvalidKeySignature(ValueError):
    """Raised for a key descriptor outside the 15 x 2 standard signatures."""

    def __init__(self, descriptor: str) -> None:
        super().__init__(f"invalid key signature {descriptor!r}")
        self.descriptor = descriptor


@dataclass(frozen=True)
class KeySignature:
    sharps_or_flats: int = 0
    mode: int = MAJOR

    @classmethod
    def parse(cls, descriptor: str) -> "KeySignature":
        parts = str(descriptor).split("/", 1)
        if len(parts) != 2:
            raise InvalidKeySignature(descriptor)
        try:
            sharps_or_flats = int(parts[0])
            mode = int(parts[1])
        except ValueError:
            raise InvalidKeySignature(descriptor) from None
        if (sharps_or_flats, mode) not in _TONICS:
            raise InvalidKeySignature(descriptor)
        return cls(sharps_or_flats=sharps_or_flats, mode=mode)

    @property
    def descriptor(self) -> str:
        return f"{self.sharps_or_flats}/{self.mode}"

    @property
    def is_major(self) -> bool:
        return self.mode == MAJOR


C_MAJOR = KeySignature(0, MAJOR)


def key_signature_token(sharps_or_flats: int, mode: int) -> str:
    """Return the Alda key-signature value, e.g. ``[:f :sharp :major]``."""

    tonic = _TONICS.get((sharps_or_flats, mode))
    if tonic is None:
        raise InvalidKeySignature(f"{sharps_or_flats}/{mode}")
    quality = "major" if mode == MAJOR else "minor"
    return f"[:{tonic} :{quality}]"


def note_names(key: KeySignature) -> Tuple[str, ...]:
    names = list(BASE_NOTE_NAMES)
    count = key.sharps_or_flats
    steps = _SHARP_STEPS[:count] if count > 0 else _FLAT_STEPS[: -count]
    for step in steps:
        for pitch_class, name in step.items():
            names[pitch_class] = name
    return tuple(names)


@dataclass(frozen=True)
class SpellingTable:
    """Pitch names for all 128 MIDI notes under one key signature."""

    key: KeySignature
    names: Tuple[str, ...]

    @classmethod
    def for_key(cls, key: KeySignature) -> "SpellingTable":
        return cls(key=key, names=note_names(key))

    def spell(self, note: int) -> Tuple[str, int]:
        if not 0 <= note <= 127:
            raise ValueError(f"note must be 0-127, got {note}")
        return self.names[note % 12], note // 12 + REFERENCE_OCTAVE


def spell(note: int, key: KeySignature = C_MAJOR) -> Tuple[str, int]:
    return SpellingTable.for_key(key).spell(note)
