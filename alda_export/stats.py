"""Per-channel counters of the notes and rests written."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List

from .lengths import is_triplet

NOTES = "notes"
RESTS = "rests"
RESTS_SKIPPED = "rests_skipped"
NOTE_SUMMANDS = "note_summands"
REST_SUMMANDS = "rest_summands"
NOTE_TRIPLETS = "note_triplets"
REST_TRIPLETS = "rest_triplets"

_LABELS = {
    NOTES: "Notes",
    NOTE_SUMMANDS: "Note summands",
    NOTE_TRIPLETS: "Note triplets",
    RESTS: "Rests",
    REST_SUMMANDS: "Rest summands",
    REST_TRIPLETS: "Rest triplets",
    RESTS_SKIPPED: "Rests skipped",
}


class Statistics:
    """Per-channel and total counters of what the emitter produced."""

    def __init__(self) -> None:
        self.channels: Dict[int, Counter] = {}
        self.total: Counter = Counter()

    def add(self, channel: int, key: str, amount: int = 1) -> None:
        self.channels.setdefault(channel, Counter())[key] += amount
        self.total[key] += amount

    def count_note(self, channel: int, tokens: Iterable[str]) -> None:
        self._count(channel, NOTES, NOTE_SUMMANDS, NOTE_TRIPLETS, tokens)

    def count_rest(self, channel: int, tokens: Iterable[str]) -> None:
        self._count(channel, RESTS, REST_SUMMANDS, REST_TRIPLETS, tokens)

    def _count(self, channel: int, item: str, summands: str, triplets: str, tokens: Iterable[str]) -> None:
        tokens = list(tokens)
        self.add(channel, item)
        self.add(channel, summands, len(tokens))
        self.add(channel, triplets, sum(1 for token in tokens if is_triplet(token)))

    def summary_lines(self) -> List[str]:
        lines = ["# STATISTICS:"]
        for channel in sorted(self.channels):
            lines.append(f"# Channel {channel}:")
            lines.extend(self._part(self.channels[channel]))
        lines.append("# TOTAL:")
        lines.extend(self._part(self.total))
        return lines

    @staticmethod
    def _part(counter: Counter) -> List[str]:
        return [f"#\t{label}: {counter[key]}" for key, label in _LABELS.items()]
