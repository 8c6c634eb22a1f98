"""Tests for the note/rest length tables and greedy decomposition."""

import pytest

from alda_export.lengths import (
    LengthTables,
    calculate_ticks,
    decompose,
    is_triplet,
    join_tokens,
    note_lengths,
    rest_lengths,
    triplet_token,
)

RES = 480


# ── table construction ───────────────────────────────────────────────


class TestTables:
    def test_note_table_at_480(self):
        assert note_lengths(RES) == {
            40: "48",
            60: "32",
            80: "24",
            90: "32.",
            120: "16",
            160: "12",
            180: "16.",
            240: "8",
            320: "6",
            360: "8.",
            480: "4",
            640: "3",
            720: "4.",
            960: "2",
            1440: "2.",
            1920: "1",
            2880: "1.",
        }

    def test_rest_table_adds_four_finer_lengths(self):
        rests = rest_lengths(RES)
        notes = note_lengths(RES)
        extra = {ticks: token for ticks, token in rests.items() if ticks not in notes}
        assert extra == {30: "64", 15: "128", 8: "256", 4: "512"}
        for ticks, token in notes.items():
            assert rests[ticks] == token

    def test_triplet_tokens(self):
        assert triplet_token(4) == "6"
        assert triplet_token(8) == "12"
        assert triplet_token(2) == "3"

    def test_calculate_ticks_rounds_half_up(self):
        assert calculate_ticks(RES, 2, 3) == 320
        assert calculate_ticks(RES, 1, 128) == 4  # 3.75
        assert calculate_ticks(RES, 1, 64) == 8  # 7.5

    def test_tiny_resolution_drops_zero_entries(self):
        rests = rest_lengths(1)
        assert 0 not in rests
        assert all(ticks > 0 for ticks in rests)

    def test_rejects_non_positive_resolution(self):
        with pytest.raises(ValueError):
            note_lengths(0)

    def test_is_triplet(self):
        assert is_triplet("6")
        assert is_triplet("48")
        assert is_triplet("3")
        assert not is_triplet("4")
        assert not is_triplet("1")
        assert not is_triplet("4.")


# ── decomposition ────────────────────────────────────────────────────


class TestDecompose:
    def test_exact_single_entry(self):
        assert decompose(480, note_lengths(RES)) == [480]

    def test_sum_of_entries_largest_first(self):
        assert decompose(600, note_lengths(RES)) == [480, 120]
        assert decompose(4800, note_lengths(RES)) == [2880, 1920]

    def test_greedy_is_not_minimal(self):
        # 100 = 40 + 60, but greedy takes 90 and drops the remainder
        assert decompose(100, note_lengths(RES)) == [90]

    def test_residual_always_below_finest_entry(self):
        for table in (note_lengths(RES), rest_lengths(RES)):
            finest = min(table)
            for duration in range(0, 6000, 7):
                summands = decompose(duration, table)
                residual = duration - sum(summands)
                assert 0 <= residual < finest
                assert summands == sorted(summands, reverse=True)

    def test_exact_when_reconstructible(self):
        table = rest_lengths(RES)
        for duration in (4, 8, 12, 30, 484, 1920 + 240 + 15, 2880 * 3):
            assert sum(decompose(duration, table)) == duration

    def test_summand_count_is_bounded(self):
        table = rest_lengths(RES)
        for duration in range(1, max(table)):
            assert len(decompose(duration, table)) <= 11

    def test_entries_below_minimum_are_never_used(self):
        table = rest_lengths(RES)
        assert decompose(12, table) == [8, 4]
        assert decompose(12, table, min_entry=8) == [8]
        assert decompose(7, table, min_entry=8) == []

    def test_join_tokens(self):
        table = rest_lengths(RES)
        assert join_tokens([480, 120], table) == "4~16"
        assert join_tokens([], table) == ""


# ── LengthTables ─────────────────────────────────────────────────────


class TestLengthTables:
    def test_defaults(self):
        tables = LengthTables.for_resolution(RES)
        assert tables.min_rest_ticks == 8
        assert tables.min_note_ticks == 40

    def test_rest_below_minimum_is_empty(self):
        tables = LengthTables.for_resolution(RES)
        assert tables.rest_summands(5) == []

    def test_rest_split_stops_at_minimum(self):
        tables = LengthTables.for_resolution(RES)
        assert tables.rest_summands(12) == [8]
        assert tables.rest_summands(23) == [15, 8]
        assert tables.rest_summands(477) == [360, 90, 15, 8]
        for ticks in range(8, 3000):
            assert all(summand >= 8 for summand in tables.rest_summands(ticks))

    def test_custom_minimum(self):
        tables = LengthTables.for_resolution(RES, min_rest_ticks=1)
        assert tables.rest_summands(5) == [4]
        assert tables.rest_summands(12) == [8, 4]

    @pytest.mark.parametrize(("minimum", "expected"), [(None, 8), (5, 8), (1, 4), (30, 30)])
    def test_shortest_rest(self, minimum, expected):
        tables = LengthTables.for_resolution(RES, min_rest_ticks=minimum)
        assert tables.shortest_rest == expected

    @pytest.mark.parametrize(
        ("press", "gap", "expected"),
        [
            (480, 480, (480, 100)),
            (432, 480, (480, 90)),
            (300, 480, (480, 63)),
            (240, None, (240, 100)),
            (500, None, (480, 104)),
            (170, None, (160, 106)),
            (600, None, (600, 100)),
            (1200, None, (1200, 100)),
            (610, None, (600, 102)),
            (5, None, (40, 13)),
            (3000, None, (3000, 100)),
            # gap is not a single length: quantize the press itself
            (480, 485, (480, 100)),
        ],
    )
    def test_note_length_for(self, press, gap, expected):
        tables = LengthTables.for_resolution(RES)
        assert tables.note_length_for(press, gap) == expected
