"""Slicing a history at global commands."""

import pytest

from alda_export.diagnostics import SLICE_LOOKUP, Diagnostics
from alda_export.history import GLOBAL_KEY, GLOBAL_TEMPO, SequenceHistory
from alda_export.slices import Slice, get_slice_by_tick, slice_boundaries, slice_sequence


def _history(*notes, globals_=(), programs=(), end_tick=None):
    history = SequenceHistory(resolution=480, end_tick=end_tick)
    for channel, tick, note, length in notes:
        history.add_note(channel, tick, note, 100, length)
    for channel, tick, program in programs:
        history.add_program(channel, tick, program)
    for tick, name, value in globals_:
        history.add_global(tick, name, value)
    return history


def _ranges(slices):
    return [(s.begin_tick, s.end_tick) for s in slices]


class TestBoundaries:
    def test_single_slice_without_globals(self):
        slices = slice_sequence(_history((0, 0, 60, 480)))
        assert _ranges(slices) == [(0, 481)]

    def test_one_slice_per_global_tick(self):
        history = _history(
            (0, 0, 60, 2400),
            globals_=[(960, GLOBAL_TEMPO, "90"), (1920, GLOBAL_KEY, "1/0")],
            end_tick=2880,
        )
        slices = slice_sequence(history)
        assert _ranges(slices) == [(0, 960), (960, 1920), (1920, 2880)]
        assert dict(slices[1].global_commands) == {GLOBAL_TEMPO: "90"}
        assert dict(slices[2].global_commands) == {GLOBAL_KEY: "1/0"}

    def test_globals_at_tick_zero_belong_to_first_slice(self):
        history = _history(
            (0, 0, 60, 480),
            globals_=[(0, GLOBAL_TEMPO, "120"), (0, GLOBAL_KEY, "2/0"), (480, GLOBAL_TEMPO, "60")],
        )
        slices = slice_sequence(history)
        assert len(slices) == 2
        assert dict(slices[0].global_commands) == {GLOBAL_KEY: "2/0", GLOBAL_TEMPO: "120"}
        assert slice_boundaries(history) == [0, 480]

    def test_slices_are_contiguous_and_cover_every_tick(self):
        history = _history(
            (0, 0, 60, 100),
            (1, 700, 64, 900),
            globals_=[(333, GLOBAL_TEMPO, "100"), (1000, GLOBAL_TEMPO, "110"), (1001, GLOBAL_KEY, "0/1")],
        )
        slices = slice_sequence(history)
        assert len(slices) == 4
        assert slices[0].begin_tick == 0
        for current, following in zip(slices, slices[1:]):
            assert current.end_tick == following.begin_tick
        for tick in range(0, slices[-1].end_tick):
            owners = [s for s in slices if s.contains(tick)]
            assert len(owners) == 1

    def test_global_after_last_note_still_gets_a_slice(self):
        history = _history((0, 0, 60, 480), globals_=[(5000, GLOBAL_TEMPO, "80")])
        slices = slice_sequence(history)
        assert _ranges(slices) == [(0, 5000), (5000, 5001)]


class TestFiltering:
    def test_held_note_keeps_its_release(self):
        history = _history((0, 0, 60, 1200), globals_=[(960, GLOBAL_TEMPO, "90")])
        first, second = slice_sequence(history)
        assert dict(first.note_on_off[0][60]) == {0: True, 1200: False}
        assert dict(second.note_on_off[0][60]) == {1200: False}

    def test_released_note_is_not_carried_over(self):
        history = _history(
            (0, 0, 60, 480),
            (0, 1000, 60, 100),
            globals_=[(960, GLOBAL_TEMPO, "90")],
        )
        first, second = slice_sequence(history)
        assert dict(first.note_on_off[0][60]) == {0: True, 480: False}
        assert dict(second.note_on_off[0][60]) == {1000: True, 1100: False}

    def test_note_history_is_restricted_to_the_slice(self):
        history = _history(
            (0, 0, 60, 480),
            (0, 960, 62, 480),
            globals_=[(960, GLOBAL_TEMPO, "90")],
        )
        first, second = slice_sequence(history)
        assert list(first.note_history[0]) == [0]
        assert list(second.note_history[0]) == [960]
        assert first.next_note_on(0, 0) is None


class TestTimelines:
    def test_off_tick_found_past_the_slice_end(self):
        history = _history((0, 0, 60, 1200), globals_=[(960, GLOBAL_TEMPO, "90")])
        first, _ = slice_sequence(history)
        events = first.timeline(0)[0]
        assert events.notes[60].off_tick == 1200

    def test_chord_notes_share_an_entry_in_ascending_order(self):
        history = _history((0, 0, 67, 480), (0, 0, 60, 480), (0, 0, 64, 480))
        (only,) = slice_sequence(history)
        assert list(only.timeline(0)[0].notes) == [60, 64, 67]

    def test_instrument_change_only_for_played_programs(self):
        history = _history((0, 0, 60, 480), programs=[(0, 0, 0), (0, 500, 40)])
        (only,) = slice_sequence(history)
        timeline = only.timeline(0)
        assert timeline[0].instrument_change
        assert 500 not in timeline

    def test_timelines_are_frozen(self):
        (only,) = slice_sequence(_history((0, 0, 60, 480)))
        assert only.frozen
        with pytest.raises(RuntimeError):
            only.add_notes(10, 0, {})
        with pytest.raises(TypeError):
            only.timeline(0)[5] = None

    def test_snapshots_are_read_only_once_frozen(self):
        history = _history((0, 0, 60, 480))
        (only,) = slice_sequence(history)
        with pytest.raises(TypeError):
            only.note_history[0][0][60] = 1
        with pytest.raises(TypeError):
            only.note_on_off[0][60][0] = False
        with pytest.raises(TypeError):
            only.note_on_off[1] = {}
        with pytest.raises(RuntimeError):
            only.filter_notes(history.note_history)
        assert only.note_history[0][0][60] == 100

    def test_untouched_channels_have_no_events(self):
        (only,) = slice_sequence(_history((3, 0, 60, 480)))
        assert only.has_events(3)
        assert not only.has_events(0)


class TestLookup:
    def _slices(self):
        history = _history((0, 0, 60, 480), globals_=[(960, GLOBAL_TEMPO, "90")], end_tick=1920)
        return slice_sequence(history)

    def test_hit(self):
        slices = self._slices()
        assert get_slice_by_tick(slices, 0) is slices[0]
        assert get_slice_by_tick(slices, 959) is slices[0]
        assert get_slice_by_tick(slices, 960) is slices[1]

    def test_miss_falls_back_to_last_slice_with_warning(self):
        slices = self._slices()
        diagnostics = Diagnostics()
        assert get_slice_by_tick(slices, 5000, diagnostics) is slices[-1]
        (warning,) = diagnostics.of_kind(SLICE_LOOKUP)
        assert warning.tick == 5000

    def test_empty_list(self):
        with pytest.raises(ValueError):
            get_slice_by_tick([], 0)


class TestSlice:
    def test_close_must_move_forward(self):
        s = Slice(100)
        with pytest.raises(ValueError):
            s.close(100)

    def test_negative_begin(self):
        with pytest.raises(ValueError):
            Slice(-1)
