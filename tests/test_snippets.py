"""Tests for speaker snippet extraction and primary-speaker resolution."""

import pytest

from clip_refiner.core.ir import FaceCandidate, Word
from clip_refiner.speakers.snippets import (
    build_speaker_snippets,
    count_speakers,
    resolve_primary_speaker,
)


def _face():
    return FaceCandidate(x=0, y=0, width=1, height=1)


class TestBuildSpeakerSnippets:

    def test_one_snippet_per_speaker_in_order(self, interview_words):
        snippets = build_speaker_snippets(interview_words)

        assert [(s.id, s.label) for s in snippets] == [("A", "Speaker 1"), ("B", "Speaker 2")]

    def test_first_long_enough_segment_is_used(self, interview_words):
        snippet = build_speaker_snippets(interview_words)[0]
        assert (snippet.start, snippet.end) == (0.0, 3.0)

    def test_short_speaker_is_padded_to_minimum(self, interview_words):
        snippet = build_speaker_snippets(interview_words)[1]
        assert snippet.start == 3.5
        assert snippet.end == pytest.approx(6.5)

    def test_padding_is_clamped_to_media_duration(self, interview_words):
        snippet = build_speaker_snippets(interview_words, total_duration=6.4)[1]
        assert snippet.end == pytest.approx(6.4)

    def test_longest_segment_when_none_is_long_enough(self):
        words = [
            Word("a", 0.0, 0.5, "A"),
            Word("b", 5.0, 6.5, "A"),
            Word("c", 10.0, 10.5, "A"),
        ]
        snippet = build_speaker_snippets(words)[0]
        assert snippet.start == 5.0

    def test_pauses_split_segments(self):
        words = [
            Word("a", 0.0, 1.0, "A"),
            Word("b", 2.0, 5.5, "A"),
        ]
        snippet = build_speaker_snippets(words, max_gap=0.8)[0]
        assert (snippet.start, snippet.end) == (2.0, 5.5)

    def test_missing_speaker_is_unknown(self, cat_sat_words):
        for word in cat_sat_words:
            word.speaker_id = None
        snippets = build_speaker_snippets(cat_sat_words)
        assert [s.id for s in snippets] == ["unknown"]

    def test_empty(self):
        assert build_speaker_snippets([]) == []


class TestCountSpeakers:

    def test_counts_distinct_ids(self, interview_words):
        assert count_speakers(interview_words) == 2

    def test_none_counts_once(self):
        words = [Word("a", 0, 1), Word("b", 1, 2), Word("c", 2, 3, "A")]
        assert count_speakers(words) == 2


class TestResolvePrimarySpeaker:

    def test_speaker_with_most_faces(self):
        faces = {"A": [_face()], "B": [_face(), _face(), _face()], "C": [_face()]}
        assert resolve_primary_speaker(faces) == ("B", 3)

    def test_tie_keeps_first(self):
        faces = {"A": [_face(), _face()], "B": [_face(), _face()]}
        assert resolve_primary_speaker(faces) == ("A", 2)

    def test_no_faces(self):
        assert resolve_primary_speaker({}) == (None, 0)
        assert resolve_primary_speaker({"A": []}) == (None, 0)
