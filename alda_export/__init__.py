"""Decompile resolved MIDI sequence histories into Alda source text."""

from .config import DecompileConfig, load_config, parse_config  # noqa: F401
from .decompiler import ExportResult, decompile, render  # noqa: F401
from .diagnostics import (  # noqa: F401
    INVALID_KEY_SIGNATURE,
    SLICE_LOOKUP,
    UNREPRESENTABLE_DURATION,
    DecompileWarning,
    Diagnostics,
)
from .emitter import AldaEmitter, Emitter, create_emitter  # noqa: F401
from .history import SequenceHistory, load_history, parse_history  # noqa: F401
from .instruments import INSTRUMENT_NAMES, AliasRegistry, Instrument, alias_for  # noqa: F401
from .lengths import (  # noqa: F401
    LengthTables,
    calculate_ticks,
    decompose,
    note_lengths,
    rest_lengths,
)
from .slices import Slice, get_slice_by_tick, slice_sequence  # noqa: F401
from .spelling import (  # noqa: F401
    InvalidKeySignature,
    KeySignature,
    SpellingTable,
    key_signature_token,
    spell,
)
