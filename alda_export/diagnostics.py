"""Non-fatal conditions collected while decompiling."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

UNREPRESENTABLE_DURATION = "unrepresentable-duration"
INVALID_KEY_SIGNATURE = "invalid-key-signature"
SLICE_LOOKUP = "slice-lookup"

WARNING_KINDS = frozenset({UNREPRESENTABLE_DURATION, INVALID_KEY_SIGNATURE, SLICE_LOOKUP})


@dataclass(frozen=True)
class DecompileWarning:
    kind: str
    message: str
    channel: Optional[int] = None
    tick: Optional[int] = None

    def __str__(self) -> str:
        where = []
        if self.channel is not None:
            where.append(f"channel {self.channel}")
        if self.tick is not None:
            where.append(f"tick {self.tick}")
        location = f" ({', '.join(where)})" if where else ""
        return f"{self.kind}: {self.message}{location}"


class Diagnostics:
    """Collects the non-fatal conditions met during one export."""

    def __init__(self) -> None:
        self.warnings: List[DecompileWarning] = []

    def warn(
        self,
        kind: str,
        message: str,
        *,
        channel: Optional[int] = None,
        tick: Optional[int] = None,
    ) -> DecompileWarning:
        if kind not in WARNING_KINDS:
            raise ValueError(f"unknown warning kind {kind!r}")
        warning = DecompileWarning(kind=kind, message=message, channel=channel, tick=tick)
        self.warnings.append(warning)
        logger.warning("%s", warning)
        return warning

    def of_kind(self, kind: str) -> List[DecompileWarning]:
        return [w for w in self.warnings if w.kind == kind]

    def __len__(self) -> int:
        return len(self.warnings)
