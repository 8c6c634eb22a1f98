#!/usr/bin/env python3
"""Convert a MIDI file (or a history JSON document) into Alda source.

Examples
--------
    python tools/midi_to_alda.py song.mid
    python tools/midi_to_alda.py song.mid -o song.alda --stats
    python tools/midi_to_alda.py history.json --config export.json
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from alda_export.config import DecompileConfig, load_config
from alda_export.decompiler import decompile
from alda_export.history import load_history
from alda_export.midi_history import load_midi_history


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Decompile a MIDI sequence into Alda source",
    )
    parser.add_argument(
        "input",
        type=Path,
        help="MIDI file, or a .json sequence history",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output .alda path (default: stdout)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON decompile config",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Append a statistics comment block",
    )
    parser.add_argument(
        "--attributes",
        action="store_true",
        help="Emit (quant N) / (vol N) attribute changes",
    )
    parser.add_argument(
        "--no-slice-comments",
        action="store_true",
        help="Omit the '# SLICE n' comments",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Debug logging",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> DecompileConfig:
    config = load_config(args.config) if args.config is not None else DecompileConfig()
    changes = {}
    if args.stats:
        changes["add_statistics"] = True
    if args.attributes:
        changes["add_attributes"] = True
    if args.no_slice_comments:
        changes["add_slice_comments"] = False
    return dataclasses.replace(config, **changes)


def main() -> int:
    parser = _build_arg_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    in_path = args.input.expanduser().resolve()
    if not in_path.exists():
        parser.error(f"input not found: {in_path}")

    if in_path.suffix.lower() == ".json":
        history = load_history(in_path)
    else:
        history = load_midi_history(in_path)

    result = decompile(history, _resolve_config(args))

    if args.output is None:
        sys.stdout.write(result.text)
    else:
        out_path = args.output.expanduser().resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result.text, encoding="utf-8")
        print(f"Wrote {len(result.text)} chars -> {out_path}", file=sys.stderr)

    print(
        f"slices={len(result.slices)} warnings={len(result.warnings)}",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
