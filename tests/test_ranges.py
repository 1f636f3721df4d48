"""Tests for keep-range building and speaker-aware splitting."""

import pytest

from clip_refiner.core.ir import TimeRange, Word
from clip_refiner.core.ranges import (
    build_keep_ranges,
    calculate_duration_from_words,
    resolve_speaker_for_range,
    split_ranges_by_speaker,
    sum_range_durations,
)


def _w(text, start, end, speaker=None):
    return Word(text=text, start=start, end=end, speaker_id=speaker)


class TestBuildKeepRanges:

    def test_contiguous_words_form_one_range(self, cat_sat_words):
        refined = [cat_sat_words[1], cat_sat_words[2]]
        assert build_keep_ranges(cat_sat_words, refined, 1.2) == [TimeRange(0.3, 0.9)]

    def test_gap_in_source_indices_opens_new_range(self, cat_sat_words):
        refined = [cat_sat_words[0], cat_sat_words[2]]
        assert build_keep_ranges(cat_sat_words, refined, 1.2) == [
            TimeRange(0.0, 0.3),
            TimeRange(0.6, 0.9),
        ]

    def test_matching_is_by_text_not_timestamps(self, cat_sat_words):
        refined = [_w("Cat", 50.0, 51.0), _w("SAT", 60.0, 61.0)]
        assert build_keep_ranges(cat_sat_words, refined, 1.2) == [TimeRange(0.3, 0.9)]

    def test_short_ranges_are_dropped(self, cat_sat_words):
        refined = [cat_sat_words[0], cat_sat_words[2]]
        assert build_keep_ranges(cat_sat_words, refined, 1.2, min_range_duration=0.5) == []

    def test_clamp_uses_last_word_end_when_duration_is_short(self, cat_sat_words):
        refined = [cat_sat_words[2], cat_sat_words[3]]
        assert build_keep_ranges(cat_sat_words, refined, 0.5) == [TimeRange(0.6, 1.2)]

    def test_unmatched_and_blank_words_are_skipped(self, cat_sat_words):
        refined = [_w("", 0, 0), _w("dog", 0, 0), _w("cat", 0, 0), _w("...", 0, 0), _w("sat", 0, 0)]
        assert build_keep_ranges(cat_sat_words, refined, 1.2) == [TimeRange(0.3, 0.9)]

    def test_ranges_are_ordered_and_disjoint(self, interview_words):
        refined = [interview_words[i] for i in (0, 1, 5, 6, 7, 14, 18)]
        ranges = build_keep_ranges(interview_words, refined, 6.4)

        assert len(ranges) == 4
        for earlier, later in zip(ranges, ranges[1:]):
            assert earlier.end <= later.start

    def test_empty_inputs(self, cat_sat_words):
        assert build_keep_ranges([], cat_sat_words, 1.2) == []
        assert build_keep_ranges(cat_sat_words, [], 1.2) == []


class TestDurations:

    def test_sum_range_durations(self):
        assert sum_range_durations([TimeRange(0, 5), TimeRange(8, 12)]) == 9

    def test_calculate_duration_from_words(self, interview_words):
        refined = interview_words[5:10]
        duration = calculate_duration_from_words(interview_words, refined, 6.4)
        assert duration == pytest.approx(1.5)

    def test_calculate_duration_applies_minimum(self, cat_sat_words):
        # default minimum is one second; "cat sat" lasts 0.6s
        assert calculate_duration_from_words(cat_sat_words, cat_sat_words[1:3], 1.2) == 0


class TestResolveSpeakerForRange:

    def test_majority_speaker_wins(self, interview_words):
        assert resolve_speaker_for_range(TimeRange(1.5, 4.0), interview_words) == "A"

    def test_known_speaker_beats_unknown(self):
        words = [_w("a", 0, 1), _w("b", 1, 2), _w("c", 2, 3), _w("d", 3, 4, "B")]
        assert resolve_speaker_for_range(TimeRange(0, 4), words) == "B"

    def test_only_unknown(self):
        assert resolve_speaker_for_range(TimeRange(0, 1), [_w("a", 0, 1)]) == "unknown"

    def test_no_overlap(self, cat_sat_words):
        assert resolve_speaker_for_range(TimeRange(5, 6), cat_sat_words) is None


class TestSplitRangesBySpeaker:

    def test_splits_at_speaker_turn(self):
        words = [_w("a", 0.0, 0.4, "A"), _w("b", 0.4, 0.5, "A"), _w("c", 0.5, 1.0, "B")]
        assert split_ranges_by_speaker([TimeRange(0.0, 1.0)], words) == [
            TimeRange(0.0, 0.5),
            TimeRange(0.5, 1.0),
        ]

    def test_single_speaker_passes_through(self, cat_sat_words):
        rng = TimeRange(0.3, 0.9)
        assert split_ranges_by_speaker([rng], cat_sat_words) == [rng]

    def test_sub_ranges_are_clipped_to_parent(self, interview_words):
        split = split_ranges_by_speaker([TimeRange(2.8, 4.0)], interview_words)
        assert split == [TimeRange(2.8, 3.5), TimeRange(3.5, 4.0)]

    def test_tiny_sub_ranges_are_dropped(self):
        words = [_w("a", 0.0, 0.5, "A"), _w("b", 0.5, 0.505, "B"), _w("c", 0.505, 1.0, "A")]
        assert split_ranges_by_speaker([TimeRange(0.0, 1.0)], words) == [
            TimeRange(0.0, 0.5),
            TimeRange(0.505, 1.0),
        ]

    def test_none_speaker_counts_as_unknown(self):
        words = [_w("a", 0.0, 0.5, None), _w("b", 0.5, 1.0, "unknown")]
        rng = TimeRange(0.0, 1.0)
        assert split_ranges_by_speaker([rng], words) == [rng]

    def test_empty_inputs_pass_through(self, cat_sat_words):
        assert split_ranges_by_speaker([], cat_sat_words) == []
        assert split_ranges_by_speaker([TimeRange(0, 1)], []) == [TimeRange(0, 1)]
