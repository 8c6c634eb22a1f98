"""Turn frozen slices into notation text.

``Emitter`` is the format interface; ``AldaEmitter`` is the Alda target.
Emitters share the slice, length and spelling collaborators and keep only
their own cursor state.

Alda output layout, per slice:

  %slice-<n>                 marker on the part that is furthest along
  # SLICE <n>                optional comment
  (key-signature! ...) ...   global attributes of the slice
  <blank line>
  piano "piano-ch0":         part declaration (``piano-ch0:`` when reused)
  	@slice-<n> r8 c/e/g4     one line per event group
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Set, Tuple, Type

from .config import DecompileConfig
from .diagnostics import INVALID_KEY_SIGNATURE, UNREPRESENTABLE_DURATION, Diagnostics
from .history import GLOBAL_COMMAND_NAMES, GLOBAL_KEY, GLOBAL_TEMPO, SequenceHistory
from .instruments import AliasRegistry, Instrument
from .lengths import LengthTables, join_tokens
from .slices import CHANNEL_COUNT, NoteProperties, Slice, TimelineEvents
from .spelling import C_MAJOR, InvalidKeySignature, KeySignature, SpellingTable, key_signature_token
from .stats import RESTS_SKIPPED, Statistics

logger = logging.getLogger(__name__)

CHORD_SEPARATOR = "/"
OCTAVE_UP = ">"
OCTAVE_DOWN = "<"
REST = "r"


class Emitter(ABC):
    """One text target driven slice by slice, channel by channel."""

    def __init__(
        self,
        *,
        history: SequenceHistory,
        tables: LengthTables,
        diagnostics: Diagnostics,
        statistics: Statistics,
        config: DecompileConfig,
    ) -> None:
        self.history = history
        self.tables = tables
        self.diagnostics = diagnostics
        self.statistics = statistics
        self.config = config

    def render(self, slices: List[Slice]) -> str:
        for number, current in enumerate(slices):
            self.begin_slice(current, number)
            self.global_attributes(current)
            for channel in range(CHANNEL_COUNT):
                self.channel_block(current, channel)
        return self.finish()

    @abstractmethod
    def begin_slice(self, current: Slice, number: int) -> None:
        ...

    @abstractmethod
    def global_attributes(self, current: Slice) -> None:
        ...

    @abstractmethod
    def channel_block(self, current: Slice, channel: int) -> None:
        ...

    @abstractmethod
    def finish(self) -> str:
        ...


class AldaEmitter(Emitter):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.lines: List[str] = []
        self.registry = AliasRegistry()
        self.by_channel: List[Optional[Instrument]] = [None] * CHANNEL_COUNT
        self.current: Optional[Instrument] = None
        self.spelling = SpellingTable.for_key(C_MAJOR)
        self.slice_number = 0
        self.markers: Set[int] = set()

    # ── slice level ─────────────────────────────────────────────────────

    def begin_slice(self, current: Slice, number: int) -> None:
        self.slice_number = number
        if number > 0:
            self._rest_before_slice(current)
            self._marker(current)
        self.lines.append("")
        if self.config.add_slice_comments:
            self.lines.append(f"# SLICE {number}")

    def _rest_before_slice(self, current: Slice) -> None:
        furthest = self.registry.furthest()
        if furthest is None or furthest.current_ticks >= current.begin_tick:
            return
        ticks = current.begin_tick - furthest.current_ticks
        self._switch_to(furthest)
        rest = self._rest(furthest, ticks, furthest.current_ticks)
        if rest is not None:
            self.lines.append(f"\t{rest}")
        furthest.advance_to(current.begin_tick)

    def _marker(self, current: Slice) -> None:
        furthest = self.registry.furthest()
        if furthest is None or furthest.current_ticks != current.begin_tick:
            logger.debug("no part at tick %d, slice %d gets no marker", current.begin_tick, self.slice_number)
            return
        self._switch_to(furthest)
        self.lines.append(f"\t%slice-{self.slice_number}")
        self.markers.add(self.slice_number)

    def global_attributes(self, current: Slice) -> None:
        commands = current.global_commands
        parts: List[str] = []
        for name in GLOBAL_COMMAND_NAMES:
            if name not in commands:
                continue
            value = commands[name]
            if name == GLOBAL_KEY:
                try:
                    key = KeySignature.parse(value)
                    token = key_signature_token(key.sharps_or_flats, key.mode)
                except InvalidKeySignature as exc:
                    self.diagnostics.warn(
                        INVALID_KEY_SIGNATURE,
                        f"{exc}; keeping {self.spelling.key.descriptor}",
                        tick=current.begin_tick,
                    )
                    continue
                # fresh table; the previous one stays untouched
                self.spelling = SpellingTable.for_key(key)
                parts.append(f"(key-signature! {token})")
            elif name == GLOBAL_TEMPO:
                parts.append(f"(tempo! {value})")
        if parts:
            self.lines.append(" ".join(parts))

    # ── channel level ───────────────────────────────────────────────────

    def channel_block(self, current: Slice, channel: int) -> None:
        if not current.has_events(channel):
            return
        self.lines.append("")
        groups = self._group_onsets(current.timeline(channel))
        onsets = [tick for tick, _, notes in groups if notes]
        for tick, instrument_change, notes in groups:
            if instrument_change:
                self._instrument_change(channel, tick)
            if notes:
                next_on = next((on for on in onsets if on > tick), None)
                self._resolve_lengths(channel, tick, notes, next_on)
                self._chord(current, channel, tick, notes, next_on)

    def _group_onsets(
        self, timeline: Mapping[int, TimelineEvents]
    ) -> List[Tuple[int, bool, Dict[int, NoteProperties]]]:
        """Fold note-ons closer than the shortest printable rest into the previous chord."""

        groups: List[Tuple[int, bool, Dict[int, NoteProperties]]] = []
        for tick, events in timeline.items():
            notes = dict(events.notes or {})
            if groups and notes and not events.instrument_change:
                start, change, held = groups[-1]
                if held and tick - start < self.tables.shortest_rest:
                    # the earlier strike of a repeated pitch wins
                    merged = {**notes, **held}
                    groups[-1] = (start, change, dict(sorted(merged.items())))
                    continue
            groups.append((tick, events.instrument_change, notes))
        return groups

    def _instrument_change(self, channel: int, tick: int) -> Instrument:
        program = self.history.program_at(channel, tick)
        instrument, is_new = self.registry.declare(channel, program)
        if is_new:
            self.lines.append(f'{instrument.name} "{instrument.alias}":')
        else:
            self.lines.append(f"{instrument.alias}:")
        self.current = instrument
        self.by_channel[channel] = instrument
        return instrument

    def _switch_to(self, instrument: Instrument) -> None:
        if self.current is not instrument:
            self.lines.append(f"{instrument.alias}:")
            self.current = instrument

    def _resolve_lengths(
        self, channel: int, tick: int, notes: Dict[int, NoteProperties], next_on: Optional[int]
    ) -> None:
        gap = next_on - tick if next_on is not None else None
        for props in notes.values():
            length, duration = self.tables.note_length_for(props.off_tick - tick, gap)
            summands = self.tables.note_summands(length)
            if not summands:
                self.diagnostics.warn(
                    UNREPRESENTABLE_DURATION,
                    f"note {props.note} of {props.off_tick - tick} ticks is shorter than any note length",
                    channel=channel,
                    tick=tick,
                )
            props.length = join_tokens(summands, self.tables.notes)
            props.end_tick = tick + sum(summands)
            props.duration = duration
            self.statistics.count_note(channel, [self.tables.notes[s] for s in summands])

    def _chord(
        self,
        current: Slice,
        channel: int,
        tick: int,
        notes: Dict[int, NoteProperties],
        next_on: Optional[int],
    ) -> None:
        if self.current is None or self.current is not self.by_channel[channel]:
            self._instrument_change(channel, tick)
        instr = self.current
        tokens: List[str] = []

        # entering this slice: jump to its marker
        if instr.current_ticks < current.begin_tick and self.slice_number in self.markers:
            tokens.append(f"@slice-{self.slice_number}")
            instr.current_ticks = current.begin_tick

        if tick > instr.current_ticks:
            rest = self._rest(instr, tick - instr.current_ticks, instr.current_ticks)
            if rest is not None:
                tokens.append(rest)
            instr.advance_to(tick)

        chord_off = min(props.end_tick for props in notes.values())

        # a rest inside the chord moves the cursor less far than its notes
        rest_end: Optional[int] = None
        if next_on is not None and chord_off > next_on:
            rest_end = next_on
        if chord_off > current.end_tick:
            rest_end = current.end_tick if rest_end is None else min(rest_end, current.end_tick)

        if self.config.add_attributes:
            tokens.extend(self._attributes(instr, next(iter(notes.values()))))

        elements = [self._note(instr, props) for props in notes.values()]
        if rest_end is not None:
            rest = self._rest(instr, rest_end - tick, tick)
            # without the rest the part moves on by the whole chord
            if rest is not None:
                elements.append(rest)
                chord_off = rest_end
        tokens.append(CHORD_SEPARATOR.join(elements))

        self.lines.append("\t" + " ".join(tokens))
        instr.advance_to(chord_off)

    def _note(self, instr: Instrument, props: NoteProperties) -> str:
        name, octave = self.spelling.spell(props.note)
        content = ""
        if octave != instr.octave:
            changer = OCTAVE_UP if octave > instr.octave else OCTAVE_DOWN
            content += changer * abs(octave - instr.octave)
            instr.octave = octave
        content += name
        if props.length != instr.note_length:
            content += props.length
            instr.note_length = props.length
        return content

    def _attributes(self, instr: Instrument, props: NoteProperties) -> List[str]:
        attributes: List[str] = []
        quant = max(1, props.duration or 0)
        if quant != round(instr.duration_ratio * 100):
            attributes.append(f"(quant {quant})")
            instr.duration_ratio = quant / 100
        if props.velocity != instr.velocity:
            attributes.append(f"(vol {round(props.velocity * 100 / 127)})")
            instr.velocity = props.velocity
        return attributes

    def _rest(self, instr: Instrument, ticks: int, tick: int) -> Optional[str]:
        """Rest token for ``ticks`` or None when the gap is too small."""

        if ticks <= 0:
            return None
        summands = self.tables.rest_summands(ticks)
        if not summands:
            self.diagnostics.warn(
                UNREPRESENTABLE_DURATION,
                f"rest of {ticks} ticks too small to be handled",
                channel=instr.channel,
                tick=tick,
            )
            self.statistics.add(instr.channel, RESTS_SKIPPED)
            return None
        self.statistics.count_rest(instr.channel, [self.tables.rests[s] for s in summands])
        length = join_tokens(summands, self.tables.rests)
        # a rest sets the part's default length like a note does
        instr.note_length = length
        return f"{REST}{length}"

    def finish(self) -> str:
        return "\n".join(self.lines).strip("\n") + "\n"


EMITTERS: Dict[str, Type[Emitter]] = {
    "alda": AldaEmitter,
}


def create_emitter(name: str, **kwargs) -> Emitter:
    emitter_cls = EMITTERS.get(name)
    if emitter_cls is None:
        valid = ", ".join(sorted(EMITTERS))
        raise ValueError(f"unknown output format {name!r}; expected one of: {valid}")
    return emitter_cls(**kwargs)
