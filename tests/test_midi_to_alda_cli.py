"""CLI integration tests for tools/midi_to_alda.py."""

from __future__ import annotations

import json
import os
from pathlib import Path
import subprocess
import sys

import mido

REPO_ROOT = Path(__file__).resolve().parents[1]
SCRIPT = REPO_ROOT / "tools" / "midi_to_alda.py"


def _run_cli(input_path: Path, *extra_args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = str(REPO_ROOT)
    return subprocess.run(
        [sys.executable, str(SCRIPT), str(input_path), *extra_args],
        cwd=str(REPO_ROOT),
        env=env,
        text=True,
        capture_output=True,
        check=False,
    )


def _write_midi(path: Path) -> Path:
    track = mido.MidiTrack(
        [
            mido.Message("program_change", channel=0, program=0, time=0),
            mido.Message("note_on", channel=0, note=60, velocity=100, time=0),
            mido.Message("note_off", channel=0, note=60, velocity=0, time=480),
        ]
    )
    mid = mido.MidiFile(type=0, ticks_per_beat=480)
    mid.tracks.append(track)
    mid.save(str(path))
    return path


def _write_history(path: Path) -> Path:
    payload = {
        "resolution": 480,
        "channels": {"0": {"notes": [{"tick": 0, "note": 60, "length": 480}]}},
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_midi_to_stdout(tmp_path: Path) -> None:
    result = _run_cli(_write_midi(tmp_path / "one.mid"))
    assert result.returncode == 0, result.stderr
    assert result.stdout == '# SLICE 0\n\npiano "piano-ch0":\n\tc\n'
    assert "slices=1 warnings=0" in result.stderr


def test_history_json_to_file(tmp_path: Path) -> None:
    out_path = tmp_path / "out" / "one.alda"
    result = _run_cli(
        _write_history(tmp_path / "one.json"),
        "-o",
        str(out_path),
        "--no-slice-comments",
    )
    assert result.returncode == 0, result.stderr
    assert out_path.read_text(encoding="utf-8") == 'piano "piano-ch0":\n\tc\n'


def test_config_file_and_stats_flag(tmp_path: Path) -> None:
    config_path = tmp_path / "export.json"
    config_path.write_text('{"add_slice_comments": false}', encoding="utf-8")
    result = _run_cli(
        _write_midi(tmp_path / "one.mid"),
        "--config",
        str(config_path),
        "--stats",
    )
    assert result.returncode == 0, result.stderr
    assert result.stdout.startswith('piano "piano-ch0":\n\tc\n')
    assert "# STATISTICS:" in result.stdout


def test_missing_input(tmp_path: Path) -> None:
    result = _run_cli(tmp_path / "absent.mid")
    assert result.returncode == 2
    assert "input not found" in result.stderr
