"""Tests for timeline compression and word retiming."""

import pytest

from clip_refiner.core.ir import RangeMapping, TimeRange, Word
from clip_refiner.core.timeline import (
    build_range_mappings,
    map_words_to_timeline,
    retime_words_sequentially,
    timeline_duration,
)


class TestBuildRangeMappings:

    def test_ranges_are_placed_back_to_back(self):
        mappings = build_range_mappings([TimeRange(0, 5), TimeRange(8, 12)])
        assert mappings == [
            RangeMapping(start=0, end=5, timeline_start=0.0),
            RangeMapping(start=8, end=12, timeline_start=5.0),
        ]

    def test_each_mapping_starts_where_the_previous_ends(self):
        mappings = build_range_mappings([TimeRange(1, 2.5), TimeRange(4, 4.5), TimeRange(9, 11)])
        for earlier, later in zip(mappings, mappings[1:]):
            assert later.timeline_start == pytest.approx(earlier.timeline_end)

    def test_timeline_duration(self):
        mappings = build_range_mappings([TimeRange(0, 5), TimeRange(8, 12)])
        assert timeline_duration(mappings) == 9
        assert timeline_duration([]) == 0

    def test_empty(self):
        assert build_range_mappings([]) == []


class TestMapWordsToTimeline:

    @pytest.fixture
    def mappings(self):
        return build_range_mappings([TimeRange(0, 5), TimeRange(8, 12)])

    def test_word_in_second_range_moves_back(self, mappings):
        mapped = map_words_to_timeline([Word("later", 9.0, 9.5)], mappings)
        assert mapped[0].start == pytest.approx(6.0)
        assert mapped[0].end == pytest.approx(6.5)

    def test_words_in_cut_material_are_dropped(self, mappings):
        words = [Word("kept", 1.0, 1.5), Word("cut", 6.0, 6.5), Word("kept", 8.5, 9.0)]
        mapped = map_words_to_timeline(words, mappings)
        assert [(w.text, w.start) for w in mapped] == [("kept", 1.0), ("kept", 5.5)]

    def test_tolerance_around_bounds(self, mappings):
        mapped = map_words_to_timeline([Word("edge", 7.97, 8.2)], mappings)
        # starts before the mapping but within tolerance: offset floors at 0
        assert mapped[0].start == pytest.approx(5.0)

    def test_short_words_get_minimum_duration(self, mappings):
        mapped = map_words_to_timeline([Word("blip", 9.0, 9.0)], mappings)
        assert mapped[0].end - mapped[0].start == pytest.approx(0.05)

    def test_speaker_is_preserved(self, mappings):
        mapped = map_words_to_timeline([Word("hi", 1.0, 1.2, speaker_id="B")], mappings)
        assert mapped[0].speaker_id == "B"

    def test_no_mappings_returns_words_unchanged(self):
        words = [Word("a", 3.0, 3.5)]
        assert map_words_to_timeline(words, []) == words


class TestRetimeSequentially:

    def test_words_are_laid_back_to_back(self):
        words = [Word("a", 10.0, 10.5), Word("b", 20.0, 20.25), Word("c", 30.0, 30.0)]
        retimed = retime_words_sequentially(words)

        assert [w.start for w in retimed] == pytest.approx([0.0, 0.5, 0.75])
        assert [w.end for w in retimed] == pytest.approx([0.5, 0.75, 0.8])

    def test_empty(self):
        assert retime_words_sequentially([]) == []
