"""Decompile a resolved sequence history into notation text.

Control flow: slice the sequence at global commands, then let the emitter
walk every slice channel by channel.  The whole transform is synchronous and
keeps no state between calls, so the same history always yields the same
text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .config import DecompileConfig
from .diagnostics import DecompileWarning, Diagnostics
from .emitter import create_emitter
from .history import SequenceHistory
from .lengths import LengthTables
from .slices import Slice, slice_sequence
from .stats import Statistics

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    text: str
    warnings: List[DecompileWarning]
    statistics: Statistics
    slices: List[Slice]


def render(
    slices: List[Slice],
    history: SequenceHistory,
    config: Optional[DecompileConfig] = None,
    *,
    diagnostics: Optional[Diagnostics] = None,
    statistics: Optional[Statistics] = None,
) -> str:
    """Emit already built slices with a fresh emitter."""

    config = config or DecompileConfig()
    statistics = statistics if statistics is not None else Statistics()
    emitter = create_emitter(
        config.format,
        history=history,
        tables=LengthTables.for_resolution(history.resolution, min_rest_ticks=config.min_rest_ticks),
        diagnostics=diagnostics if diagnostics is not None else Diagnostics(),
        statistics=statistics,
        config=config,
    )
    text = emitter.render(slices)
    if config.add_statistics:
        text += "\n" + "\n".join(statistics.summary_lines()) + "\n"
    return text


def decompile(history: SequenceHistory, config: Optional[DecompileConfig] = None) -> ExportResult:
    config = config or DecompileConfig()
    diagnostics = Diagnostics()
    statistics = Statistics()

    slices = slice_sequence(history, diagnostics)
    logger.debug("sequence split into %d slices", len(slices))

    text = render(slices, history, config, diagnostics=diagnostics, statistics=statistics)
    if diagnostics.warnings:
        logger.info("decompiled with %d warnings", len(diagnostics.warnings))
    return ExportResult(
        text=text,
        warnings=list(diagnostics.warnings),
        statistics=statistics,
        slices=slices,
    )
