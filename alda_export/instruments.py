"""Alda instrument names and the per-channel emission state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

# Alda instrument name per General MIDI program number.
INSTRUMENT_NAMES: Tuple[str, ...] = (
    "piano",                            #   0
    "midi-bright-acoustic-piano",       #   1
    "midi-electric-grand-piano",        #   2
    "midi-honky-tonk-piano",            #   3
    "midi-electric-piano-1",            #   4
    "midi-electric-piano-2",            #   5
    "harpsichord",                      #   6
    "clavinet",                         #   7
    "celesta",                          #   8
    "glockenspiel",                     #   9
    "music-box",                        #  10
    "vibraphone",                       #  11
    "marimba",                          #  12
    "xylophone",                        #  13
    "tubular-bells",                    #  14
    "dulcimer",                         #  15
    "midi-drawbar-organ",               #  16
    "midi-percussive-organ",            #  17
    "midi-rock-organ",                  #  18
    "organ",                            #  19
    "midi-reed-organ",                  #  20
    "accordion",                        #  21
    "harmonica",                        #  22
    "midi-tango-accordion",             #  23
    "guitar",                           #  24
    "midi-acoustic-guitar-steel",       #  25
    "midi-electric-guitar-jazz",        #  26
    "electric-guitar-clean",            #  27
    "midi-electric-guitar-palm-muted",  #  28
    "electric-guitar-overdrive",        #  29
    "electric-guitar-distorted",        #  30
    "electric-guitar-harmonics",        #  31
    "acoustic-bass",                    #  32
    "electric-bass",                    #  33
    "electric-bass-pick",               #  34
    "fretless-bass",                    #  35
    "midi-bass-slap",                   #  36
    "midi-bass-pop",                    #  37
    "midi-synth-bass-1",                #  38
    "midi-synth-bass-2",                #  39
    "violin",                           #  40
    "viola",                            #  41
    "cello",                            #  42
    "contrabass",                       #  43
    "midi-tremolo-strings",             #  44
    "midi-pizzicato-strings",           #  45
    "harp",                             #  46
    "timpani",                          #  47
    "midi-string-ensemble-1",           #  48
    "midi-string-ensemble-2",           #  49
    "midi-synth-strings-1",             #  50
    "midi-synth-strings-2",             #  51
    "midi-choir-aahs",                  #  52
    "midi-voice-oohs",                  #  53
    "midi-synth-voice",                 #  54
    "midi-orchestra-hit",               #  55
    "trumpet",                          #  56
    "trombone",                         #  57
    "tuba",                             #  58
    "midi-muted-trumpet",               #  59
    "french-horn",                      #  60
    "midi-brass-section",               #  61
    "midi-synth-brass-1",               #  62
    "midi-synth-brass-2",               #  63
    "soprano-sax",                      #  64
    "alto-sax",                         #  65
    "tenor-sax",                        #  66
    "bari-sax",                         #  67
    "oboe",                             #  68
    "english-horn",                     #  69
    "bassoon",                          #  70
    "clarinet",                         #  71
    "piccolo",                          #  72
    "flute",                            #  73
    "recorder",                         #  74
    "pan-flute",                        #  75
    "bottle",                           #  76
    "shakuhachi",                       #  77
    "whistle",                          #  78
    "ocarina",                          #  79
    "square",                           #  80
    "sawtooth",                         #  81
    "calliope",                         #  82
    "chiff",                            #  83
    "charang",                          #  84
    "midi-solo-vox",                    #  85
    "midi-fifths",                      #  86
    "midi-bass-and-lead",               #  87
    "midi-pad-new-age",                 #  88
    "midi-pad-warm",                    #  89
    "midi-pad-polysynth",               #  90
    "midi-pad-choir",                   #  91
    "midi-pad-bowed",                   #  92
    "midi-pad-metallic",                #  93
    "midi-pad-halo",                    #  94
    "midi-pad-sweep",                   #  95
    "midi-fx-ice-rain",                 #  96
    "midi-soundtrack",                  #  97
    "midi-crystal",                     #  98
    "midi-atmosphere",                  #  99
    "midi-brightness",                  # 100
    "midi-goblins",                     # 101
    "midi-echoes",                      # 102
    "midi-sci-fi",                      # 103
    "sitar",                            # 104
    "banjo",                            # 105
    "shamisen",                         # 106
    "koto",                             # 107
    "kalimba",                          # 108
    "bagpipes",                         # 109
    "midi-fiddle",                      # 110
    "shanai",                           # 111
    "midi-tinkle-bell",                 # 112
    "midi-agogo",                       # 113
    "steel-drums",                      # 114
    "midi-woodblock",                   # 115
    "midi-taiko-drum",                  # 116
    "midi-melodic-tom",                 # 117
    "midi-synth-drum",                  # 118
    "midi-reverse-cymbal",              # 119
    "midi-guitar-fret-noise",           # 120
    "midi-breath-noise",                # 121
    "midi-seashore",                    # 122
    "midi-bird-tweet",                  # 123
    "midi-telephone-ring",              # 124
    "midi-helicopter",                  # 125
    "midi-applause",                    # 126
    "midi-gunshot",                     # 127
)

# Alda part defaults
DEFAULT_OCTAVE = 4
DEFAULT_NOTE_LENGTH = "4"
DEFAULT_DURATION_RATIO = 0.9
DEFAULT_VELOCITY = 100


def instrument_name(program: int) -> str:
    if not 0 <= program <= 127:
        raise ValueError(f"program must be 0-127, got {program}")
    return INSTRUMENT_NAMES[program]


def alias_for(program: int, channel: int) -> str:
    return f"{instrument_name(program)}-ch{channel}"


@dataclass(eq=False)
class Instrument:
    """Emission cursor of one Alda part (one program on one channel).

    Identity matters: the emitter compares instruments with ``is``, and the
    same object is shared by every helper that touches the channel.
    """

    channel: int
    program: int
    name: str
    alias: str
    current_ticks: int = 0
    octave: int = DEFAULT_OCTAVE
    note_length: str = DEFAULT_NOTE_LENGTH
    duration_ratio: float = DEFAULT_DURATION_RATIO
    velocity: int = DEFAULT_VELOCITY

    @classmethod
    def create(cls, channel: int, program: int) -> "Instrument":
        if not 0 <= channel <= 15:
            raise ValueError(f"channel must be 0-15, got {channel}")
        return cls(
            channel=channel,
            program=program,
            name=instrument_name(program),
            alias=alias_for(program, channel),
        )

    def advance_to(self, tick: int) -> None:
        if tick > self.current_ticks:
            self.current_ticks = tick


def max_current_ticks(instruments: Iterable[Instrument]) -> int:
    return max((instr.current_ticks for instr in instruments), default=0)


class AliasRegistry:
    """Declared Alda parts keyed by ``<instrumentName>-ch<channel>``."""

    def __init__(self) -> None:
        self._by_alias: Dict[str, Instrument] = {}

    def __contains__(self, alias: str) -> bool:
        return alias in self._by_alias

    def __iter__(self) -> Iterator[Instrument]:
        return iter(self._by_alias.values())

    def __len__(self) -> int:
        return len(self._by_alias)

    def get(self, alias: str) -> Optional[Instrument]:
        return self._by_alias.get(alias)

    def declare(self, channel: int, program: int) -> Tuple[Instrument, bool]:
        """Return the part for ``channel``/``program`` and whether it is new."""

        alias = alias_for(program, channel)
        existing = self._by_alias.get(alias)
        if existing is not None:
            return existing, False
        instrument = Instrument.create(channel, program)
        self._by_alias[alias] = instrument
        return instrument, True

    def furthest(self) -> Optional[Instrument]:
        """The declared part whose cursor is furthest along (first one on ties)."""

        best: Optional[Instrument] = None
        for instrument in self._by_alias.values():
            if best is None or instrument.current_ticks > best.current_ticks:
                best = instrument
        return best
