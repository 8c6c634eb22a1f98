"""Decompile options and their JSON form."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "alda"
VALID_FORMATS = {DEFAULT_FORMAT}


@dataclass(frozen=True)
class DecompileConfig:
    format: str = DEFAULT_FORMAT
    add_slice_comments: bool = True
    add_attributes: bool = False  # (quant N) / (vol N) when they change
    add_statistics: bool = False
    min_rest_ticks: Optional[int] = None  # None: a 1/256 note


def _require_bool(value: object, *, where: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{where} must be true or false")
    return value


def parse_config(data: object) -> DecompileConfig:
    if data is None:
        return DecompileConfig()
    if not isinstance(data, dict):
        raise ValueError("config must be an object")

    known = {f.name for f in fields(DecompileConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")

    fmt = data.get("format", DEFAULT_FORMAT)
    if fmt not in VALID_FORMATS:
        valid = ", ".join(sorted(VALID_FORMATS))
        raise ValueError(f"format must be one of: {valid}")

    min_rest_ticks = data.get("min_rest_ticks")
    if min_rest_ticks is not None:
        if not isinstance(min_rest_ticks, int) or isinstance(min_rest_ticks, bool):
            raise ValueError("min_rest_ticks must be an integer")
        if min_rest_ticks < 1:
            raise ValueError("min_rest_ticks must be >= 1")

    defaults = DecompileConfig()
    return DecompileConfig(
        format=fmt,
        add_slice_comments=_require_bool(
            data.get("add_slice_comments", defaults.add_slice_comments),
            where="add_slice_comments",
        ),
        add_attributes=_require_bool(
            data.get("add_attributes", defaults.add_attributes), where="add_attributes"
        ),
        add_statistics=_require_bool(
            data.get("add_statistics", defaults.add_statistics), where="add_statistics"
        ),
        min_rest_ticks=min_rest_ticks,
    )


def load_config(path: Path | str) -> DecompileConfig:
    config_path = Path(path).expanduser().resolve()
    return parse_config(json.loads(config_path.read_text(encoding="utf-8")))
