"""Build a SequenceHistory from a MIDI file using mido."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Tuple

import mido

from .history import GLOBAL_KEY, GLOBAL_TEMPO, SequenceHistory, format_tempo
from .spelling import MAJOR, MINOR

logger = logging.getLogger(__name__)

# mido key names -> (signed sharps/flats, mode)
MIDO_KEYS: Dict[str, Tuple[int, int]] = {
    "C": (0, MAJOR), "G": (1, MAJOR), "D": (2, MAJOR), "A": (3, MAJOR),
    "E": (4, MAJOR), "B": (5, MAJOR), "F#": (6, MAJOR), "C#": (7, MAJOR),
    "F": (-1, MAJOR), "Bb": (-2, MAJOR), "Eb": (-3, MAJOR), "Ab": (-4, MAJOR),
    "Db": (-5, MAJOR), "Gb": (-6, MAJOR), "Cb": (-7, MAJOR),
    "Am": (0, MINOR), "Em": (1, MINOR), "Bm": (2, MINOR), "F#m": (3, MINOR),
    "C#m": (4, MINOR), "G#m": (5, MINOR), "D#m": (6, MINOR), "A#m": (7, MINOR),
    "Dm": (-1, MINOR), "Gm": (-2, MINOR), "Cm": (-3, MINOR), "Fm": (-4, MINOR),
    "Bbm": (-5, MINOR), "Ebm": (-6, MINOR), "Abm": (-7, MINOR),
}


def key_descriptor(mido_key: str) -> str:
    """``"D"`` -> ``"2/0"``, ``"Cm"`` -> ``"-3/1"``."""

    if mido_key not in MIDO_KEYS:
        raise ValueError(f"unknown key signature {mido_key!r}")
    sharps_or_flats, mode = MIDO_KEYS[mido_key]
    return f"{sharps_or_flats}/{mode}"


def history_from_midi(mid: mido.MidiFile) -> SequenceHistory:
    if mid.type == 2:
        raise ValueError("asynchronous (type 2) MIDI files are not supported")

    history = SequenceHistory(resolution=mid.ticks_per_beat)
    last_tick = 0

    for track in mid.tracks:
        abs_tick = 0
        for msg in track:
            abs_tick += msg.time
            last_tick = max(last_tick, abs_tick)

            if msg.type == "note_on" and msg.velocity > 0:
                history.note_history.setdefault(msg.channel, {}).setdefault(abs_tick, {})[
                    msg.note
                ] = msg.velocity
                history.note_on_off.setdefault(msg.channel, {}).setdefault(msg.note, {})[
                    abs_tick
                ] = True
            elif msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
                on_off = history.note_on_off.setdefault(msg.channel, {}).setdefault(msg.note, {})
                # an on at the same tick wins (release + re-strike)
                if not on_off.get(abs_tick, False):
                    on_off[abs_tick] = False
            elif msg.type == "program_change":
                history.add_program(msg.channel, abs_tick, msg.program)
            elif msg.type == "set_tempo":
                history.add_global(abs_tick, GLOBAL_TEMPO, format_tempo(mido.tempo2bpm(msg.tempo)))
            elif msg.type == "key_signature":
                history.add_global(abs_tick, GLOBAL_KEY, key_descriptor(msg.key))

    history.end_tick = last_tick + 1
    logger.debug(
        "read %d tracks, resolution %d, %d ticks",
        len(mid.tracks),
        history.resolution,
        last_tick,
    )
    return history


def load_midi_history(path: Path | str) -> SequenceHistory:
    return history_from_midi(mido.MidiFile(str(Path(path).expanduser())))
