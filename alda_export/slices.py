"""Sequence slices.

A slice is the tick range ``[begin_tick, end_tick)`` that starts at tick 0 or
at a global command (tempo or key change) and runs until the next one or the
end of the sequence.  Each slice owns:

  - the global commands effective at its begin tick
  - one timeline per channel: tick -> instrument-change marker and/or the
    notes beginning at that tick
  - note history / on-off snapshots restricted to its own range, so the
    emitter never has to look outside the slice

Timelines are append-only while the slicer runs; freezing makes them and the
snapshots read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .diagnostics import SLICE_LOOKUP, Diagnostics
from .history import NoteHistory, NoteOnOff, SequenceHistory

logger = logging.getLogger(__name__)

CHANNEL_COUNT = 16


def _read_only(table: Mapping) -> Mapping:
    return MappingProxyType(
        {key: _read_only(value) if isinstance(value, dict) else value for key, value in table.items()}
    )


@dataclass
class NoteProperties:
    """One note of a timeline entry.

    ``length``, ``end_tick`` and ``duration`` are filled in by length
    resolution right before the note is emitted.
    """

    note: int
    velocity: int
    off_tick: int
    length: Optional[str] = None
    end_tick: Optional[int] = None
    duration: Optional[int] = None  # pressed share of the length, percent


@dataclass
class TimelineEvents:
    instrument_change: bool = False
    notes: Optional[Dict[int, NoteProperties]] = None


class Slice:
    def __init__(self, begin_tick: int) -> None:
        if begin_tick < 0:
            raise ValueError(f"begin_tick must be >= 0, got {begin_tick}")
        self.begin_tick = begin_tick
        self.end_tick = -1
        self._global_commands: Dict[str, str] = {}
        self._timelines: List[Dict[int, TimelineEvents]] = [{} for _ in range(CHANNEL_COUNT)]
        # plain dicts while filtering, read-only views once frozen
        self.note_history: Mapping[int, Mapping[int, Mapping[int, int]]] = {}
        self.note_on_off: Mapping[int, Mapping[int, Mapping[int, bool]]] = {}
        self._frozen = False

    def __repr__(self) -> str:
        return f"Slice(begin={self.begin_tick}, end={self.end_tick})"

    # ── construction ────────────────────────────────────────────────────

    def _check_open(self) -> None:
        if self._frozen:
            raise RuntimeError(f"{self!r} is frozen")

    def add_global_command(self, name: str, value: str) -> None:
        self._check_open()
        self._global_commands[name] = value

    def close(self, end_tick: int) -> None:
        self._check_open()
        if end_tick <= self.begin_tick:
            raise ValueError(
                f"end tick {end_tick} must be after begin tick {self.begin_tick}"
            )
        self.end_tick = end_tick

    def add_instrument_change(self, tick: int, channel: int) -> None:
        self._events_at(tick, channel).instrument_change = True

    def add_notes(self, tick: int, channel: int, notes: Dict[int, NoteProperties]) -> None:
        self._events_at(tick, channel).notes = dict(sorted(notes.items()))

    def _events_at(self, tick: int, channel: int) -> TimelineEvents:
        self._check_open()
        timeline = self._timelines[channel]
        events = timeline.get(tick)
        if events is None:
            events = TimelineEvents()
            timeline[tick] = events
        return events

    def freeze(self) -> None:
        for channel, timeline in enumerate(self._timelines):
            self._timelines[channel] = dict(sorted(timeline.items()))
        self.note_history = _read_only(self.note_history)
        self.note_on_off = _read_only(self.note_on_off)
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── filtering ───────────────────────────────────────────────────────

    def filter_notes(self, note_history: NoteHistory) -> NoteHistory:
        """Copy the note-ons that fall inside the slice."""

        self._check_open()
        filtered: NoteHistory = {}
        for channel, by_tick in sorted(note_history.items()):
            filtered[channel] = {
                tick: dict(notes)
                for tick, notes in sorted(by_tick.items())
                if self.contains(tick)
            }
        self.note_history = filtered
        return filtered

    def filter_on_off(self, note_on_off: NoteOnOff) -> NoteOnOff:
        """Copy the on/off entries inside the slice.

        A note that is still pressed at the end of the slice keeps exactly one
        entry past the end (its release) so that chord endings can be found
        without looking at other slices.
        """
        self._check_open()
        filtered: NoteOnOff = {}
        for channel, by_note in sorted(note_on_off.items()):
            channel_on_off: Dict[int, Dict[int, bool]] = {}
            for note, by_tick in sorted(by_note.items()):
                kept: Dict[int, bool] = {}
                last_on: Optional[bool] = None
                for tick, is_on in sorted(by_tick.items()):
                    if tick < self.begin_tick:
                        continue
                    if tick < self.end_tick:
                        kept[tick] = is_on
                        last_on = is_on
                        continue
                    if last_on:
                        kept[tick] = is_on
                    break
                channel_on_off[note] = kept
            filtered[channel] = channel_on_off
        self.note_on_off = filtered
        return filtered

    # ── reading ─────────────────────────────────────────────────────────

    def contains(self, tick: int) -> bool:
        return self.begin_tick <= tick < self.end_tick

    @property
    def global_commands(self) -> Mapping[str, str]:
        return MappingProxyType(self._global_commands)

    def timeline(self, channel: int) -> Mapping[int, TimelineEvents]:
        return MappingProxyType(self._timelines[channel])

    def has_events(self, channel: int) -> bool:
        return bool(self._timelines[channel])

    def next_note_on(self, channel: int, tick: int) -> Optional[int]:
        """First note-on tick in ``channel`` after ``tick`` within the slice."""

        later = [t for t in self.note_history.get(channel, {}) if t > tick]
        return min(later) if later else None

    def note_off_tick(self, channel: int, note: int, tick: int) -> Optional[int]:
        """Tick at which a note pressed at ``tick`` ends.

        The first on/off entry after ``tick`` ends the note; a re-strike counts
        as an implicit release.
        """
        by_tick = self.note_on_off.get(channel, {}).get(note, {})
        later = [t for t in by_tick if t > tick]
        return min(later) if later else None


def get_slice_by_tick(
    slices: List[Slice], tick: int, diagnostics: Optional[Diagnostics] = None
) -> Slice:
    if not slices:
        raise ValueError("no slices to search")
    for candidate in slices:
        if candidate.contains(tick):
            return candidate

    message = f"no slice contains tick {tick}; using the last slice"
    if diagnostics is not None:
        diagnostics.warn(SLICE_LOOKUP, message, tick=tick)
    else:
        logger.warning(message)
    return slices[-1]


def slice_boundaries(history: SequenceHistory) -> List[int]:
    ticks = [0]
    ticks.extend(tick for tick in history.global_ticks() if tick > 0)
    return ticks


def slice_sequence(
    history: SequenceHistory, diagnostics: Optional[Diagnostics] = None
) -> List[Slice]:
    """Partition the sequence at every global command tick."""

    boundaries = slice_boundaries(history)
    end_tick = max(history.sequence_end_tick(), boundaries[-1] + 1)

    slices = [Slice(begin) for begin in boundaries]
    for current, following in zip(slices, slices[1:]):
        current.close(following.begin_tick)
    slices[-1].close(end_tick)

    for current in slices:
        for name, value in sorted(history.global_commands.get(current.begin_tick, {}).items()):
            current.add_global_command(name, value)
        current.filter_notes(history.note_history)
        current.filter_on_off(history.note_on_off)

    _populate_timelines(slices, history, diagnostics)

    for current in slices:
        current.freeze()
        logger.debug("%r globals=%s", current, dict(current.global_commands))
    return slices


def _populate_timelines(
    slices: List[Slice], history: SequenceHistory, diagnostics: Optional[Diagnostics]
) -> None:
    for channel in history.channels():
        note_on_ticks: List[int] = []
        for tick, notes in history.note_ons(channel):
            note_on_ticks.append(tick)
            owner = get_slice_by_tick(slices, tick, diagnostics)
            group: Dict[int, NoteProperties] = {}
            for note, velocity in sorted(notes.items()):
                off_tick = owner.note_off_tick(channel, note, tick)
                if off_tick is None:
                    off_tick = owner.end_tick
                group[note] = NoteProperties(note=note, velocity=velocity, off_tick=off_tick)
            owner.add_notes(tick, channel, group)

        for tick, until in _program_spans(history, channel):
            # only programs that actually get played are declared
            if any(tick <= on < until for on in note_on_ticks):
                get_slice_by_tick(slices, tick, diagnostics).add_instrument_change(tick, channel)


def _program_spans(history: SequenceHistory, channel: int) -> List[Tuple[int, float]]:
    ticks = sorted(history.instrument_history.get(channel, {}))
    ends: List[float] = [*ticks[1:], float("inf")]
    return list(zip(ticks, ends))
