"""Resolved event history consumed by the decompiler.

The history is what an upstream MIDI reader produces after resolving the raw
event stream into per-channel tables:

  note_history[channel][tick][note]    -> velocity   (note-ons only)
  note_on_off[channel][note][tick]     -> True/False (on/off)
  instrument_history[channel][tick]    -> program
  global_commands[tick][name]          -> value      ("tempo", "key")

Key values use the ``"<signed sharps/flats>/<mode>"`` descriptor.  All maps
are read in ascending key order; the decompiler never mutates a history.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

GLOBAL_TEMPO = "tempo"
GLOBAL_KEY = "key"
GLOBAL_COMMAND_NAMES = (GLOBAL_KEY, GLOBAL_TEMPO)

NoteHistory = Dict[int, Dict[int, Dict[int, int]]]
NoteOnOff = Dict[int, Dict[int, Dict[int, bool]]]
InstrumentHistory = Dict[int, Dict[int, int]]


def format_tempo(bpm: float) -> str:
    value = round(float(bpm), 2)
    if value == int(value):
        return str(int(value))
    return f"{value:g}"


@dataclass
class SequenceHistory:
    resolution: int
    note_history: NoteHistory = field(default_factory=dict)
    note_on_off: NoteOnOff = field(default_factory=dict)
    instrument_history: InstrumentHistory = field(default_factory=dict)
    global_commands: Dict[int, Dict[str, str]] = field(default_factory=dict)
    end_tick: Optional[int] = None

    def __post_init__(self) -> None:
        if self.resolution <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")

    # ── building ────────────────────────────────────────────────────────

    def add_note(self, channel: int, tick: int, note: int, velocity: int, length: int) -> None:
        """Record a note-on at ``tick`` and its note-off ``length`` ticks later."""

        self.note_history.setdefault(channel, {}).setdefault(tick, {})[note] = velocity
        on_off = self.note_on_off.setdefault(channel, {}).setdefault(note, {})
        on_off[tick] = True
        off_tick = tick + length
        # a re-strike at the off tick keeps its note-on
        if not on_off.get(off_tick, False):
            on_off[off_tick] = False

    def add_program(self, channel: int, tick: int, program: int) -> None:
        self.instrument_history.setdefault(channel, {})[tick] = program

    def add_global(self, tick: int, name: str, value: str) -> None:
        if name not in GLOBAL_COMMAND_NAMES:
            raise ValueError(f"unknown global command {name!r}")
        self.global_commands.setdefault(tick, {})[name] = value

    # ── reading ─────────────────────────────────────────────────────────

    def channels(self) -> Iterator[int]:
        return iter(sorted(set(self.note_history) | set(self.instrument_history)))

    def note_ons(self, channel: int) -> Iterator[Tuple[int, Dict[int, int]]]:
        for tick in sorted(self.note_history.get(channel, {})):
            yield tick, self.note_history[channel][tick]

    def program_at(self, channel: int, tick: int) -> int:
        """Program active in ``channel`` at ``tick`` (0 = piano when unset)."""

        program = 0
        for change_tick, value in sorted(self.instrument_history.get(channel, {}).items()):
            if change_tick > tick:
                break
            program = value
        return program

    def global_ticks(self) -> Iterator[int]:
        return iter(sorted(tick for tick, cmds in self.global_commands.items() if cmds))

    def sequence_end_tick(self) -> int:
        if self.end_tick is not None:
            return self.end_tick
        last = 0
        for by_tick in self.note_history.values():
            last = max([last, *by_tick])
        for by_note in self.note_on_off.values():
            for by_tick in by_note.values():
                last = max([last, *by_tick])
        for by_tick in self.instrument_history.values():
            last = max([last, *by_tick])
        last = max([last, *self.global_commands])
        return last + 1


# ── JSON form ──────────────────────────────────────────────────────────


def _require_dict(value: object, *, where: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object")
    return value


def _require_list(value: object, *, where: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"{where} must be an array")
    return value


def _int_in_range(value: object, *, where: str, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{where} must be an integer")
    if not (low <= value <= high):
        raise ValueError(f"{where} must be in [{low}, {high}]")
    return value


MAX_TICK = 2**63 - 1


def parse_history(data: object) -> SequenceHistory:
    obj = _require_dict(data, where="history")
    resolution = _int_in_range(obj.get("resolution"), where="resolution", low=1, high=65535)

    end_tick = None
    if obj.get("end_tick") is not None:
        end_tick = _int_in_range(obj["end_tick"], where="end_tick", low=1, high=MAX_TICK)

    history = SequenceHistory(resolution=resolution, end_tick=end_tick)

    channels_raw = _require_dict(obj.get("channels", {}), where="channels")
    for key, channel_raw in channels_raw.items():
        try:
            channel = int(key)
        except ValueError:
            raise ValueError(f"channels key {key!r} must be a channel number") from None
        where = f"channels[{key}]"
        channel = _int_in_range(channel, where=where, low=0, high=15)
        channel_obj = _require_dict(channel_raw, where=where)

        notes = _require_list(channel_obj.get("notes", []), where=f"{where}.notes")
        for idx, note_raw in enumerate(notes):
            nwhere = f"{where}.notes[{idx}]"
            note_obj = _require_dict(note_raw, where=nwhere)
            history.add_note(
                channel,
                tick=_int_in_range(note_obj.get("tick"), where=f"{nwhere}.tick", low=0, high=MAX_TICK),
                note=_int_in_range(note_obj.get("note"), where=f"{nwhere}.note", low=0, high=127),
                velocity=_int_in_range(
                    note_obj.get("velocity", 100), where=f"{nwhere}.velocity", low=1, high=127
                ),
                length=_int_in_range(note_obj.get("length"), where=f"{nwhere}.length", low=1, high=MAX_TICK),
            )

        programs = _require_list(channel_obj.get("programs", []), where=f"{where}.programs")
        for idx, program_raw in enumerate(programs):
            pwhere = f"{where}.programs[{idx}]"
            program_obj = _require_dict(program_raw, where=pwhere)
            history.add_program(
                channel,
                tick=_int_in_range(program_obj.get("tick"), where=f"{pwhere}.tick", low=0, high=MAX_TICK),
                program=_int_in_range(program_obj.get("program"), where=f"{pwhere}.program", low=0, high=127),
            )

    globals_raw = _require_list(obj.get("globals", []), where="globals")
    for idx, cmd_raw in enumerate(globals_raw):
        gwhere = f"globals[{idx}]"
        cmd = _require_dict(cmd_raw, where=gwhere)
        tick = _int_in_range(cmd.get("tick"), where=f"{gwhere}.tick", low=0, high=MAX_TICK)
        if GLOBAL_TEMPO in cmd:
            tempo = cmd[GLOBAL_TEMPO]
            if not isinstance(tempo, (int, float)) or isinstance(tempo, bool) or tempo <= 0:
                raise ValueError(f"{gwhere}.tempo must be a positive number")
            history.add_global(tick, GLOBAL_TEMPO, format_tempo(tempo))
        if GLOBAL_KEY in cmd:
            key = cmd[GLOBAL_KEY]
            if not isinstance(key, str) or not key:
                raise ValueError(f"{gwhere}.key must be a non-empty string")
            # validity is checked at emission time, where a bad key is a warning
            history.add_global(tick, GLOBAL_KEY, key)

    return history


def load_history(path: Path | str) -> SequenceHistory:
    history_path = Path(path).expanduser().resolve()
    payload = json.loads(history_path.read_text(encoding="utf-8"))
    return parse_history(payload)
