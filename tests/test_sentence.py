"""Tests for mid-sentence detection and sentence-start extension."""

from clip_refiner.core.aligner import align_text_to_words
from clip_refiner.core.ir import Word
from clip_refiner.core.sentence import (
    ends_sentence,
    extend_to_sentence_start,
    find_sentence_start,
    is_mid_sentence_start,
    locate_word_index,
)


def _w(text, start, end, speaker="A"):
    return Word(text=text, start=start, end=end, speaker_id=speaker)


class TestEndsSentence:

    def test_terminal_punctuation(self):
        assert ends_sentence("down.")
        assert ends_sentence("really?")
        assert ends_sentence('"go!"')
        assert ends_sentence("end.)")

    def test_non_terminal(self):
        assert not ends_sentence("cat,")
        assert not ends_sentence("cat")
        assert not ends_sentence("")


class TestIsMidSentenceStart:

    def test_capitalised_edit_is_a_proper_start(self):
        words = [_w("cat", 0.3, 0.6)]
        assert not is_mid_sentence_start(words, "Cat sat")

    def test_capitalised_conjunction_is_not_a_proper_start(self):
        words = [_w("And", 0.0, 0.2), _w("then", 0.2, 0.4)]
        assert is_mid_sentence_start(words, "And then we")

    def test_lowercase_first_word(self):
        assert is_mid_sentence_start([_w("cat", 0.3, 0.6)], "cat sat")

    def test_first_person_pronoun_is_not_lowercase_evidence(self):
        words = [_w("i", 0.0, 0.1), _w("think", 0.1, 0.3)]
        assert not is_mid_sentence_start(words, "i think")

    def test_question_word_pronoun_verb_pattern(self):
        words = [_w("Why", 0.0, 0.2), _w("I", 0.2, 0.3), _w("was", 0.3, 0.5)]
        assert is_mid_sentence_start(words)

    def test_empty_words(self):
        assert not is_mid_sentence_start([], "and then")

    def test_custom_heuristics(self):
        heuristics = {
            "proper_start_exclusions": set(),
            "mid_sentence_starters": {"och"},
            "question_words": set(),
            "pronoun_verbs": set(),
            "first_person_pronoun": "jag",
        }
        assert is_mid_sentence_start([_w("Och", 0.0, 0.2)], None, heuristics)


class TestLocateAndWalk:

    def test_locate_by_text_and_time(self, cat_sat_words):
        assert locate_word_index(cat_sat_words, _w("Sat", 0.65, 0.9)) == 2

    def test_locate_outside_tolerance(self, cat_sat_words):
        assert locate_word_index(cat_sat_words, _w("sat", 1.5, 1.8)) == -1

    def test_find_sentence_start_stops_after_terminal_word(self, interview_words):
        # "talk" (7) walks back to "Today" (5); "show." ends the previous sentence
        assert find_sentence_start(interview_words, 7) == 5

    def test_find_sentence_start_at_zero(self, cat_sat_words):
        assert find_sentence_start(cat_sat_words, 0) == 0


class TestExtendToSentenceStart:

    def test_cat_sat_is_extended_to_the(self, cat_sat_words):
        aligned = align_text_to_words(cat_sat_words, "cat sat").words
        extended = extend_to_sentence_start(cat_sat_words, aligned, "cat sat")

        assert [w.text for w in extended] == ["The", "cat", "sat"]
        assert (extended[0].start, extended[0].end) == (0.0, 0.3)

    def test_extension_stays_inside_the_sentence(self, interview_words):
        edit = "we talk about money"
        aligned = align_text_to_words(interview_words, edit).words
        extended = extend_to_sentence_start(interview_words, aligned, edit)

        assert [w.text for w in extended][:2] == ["Today", "we"]
        assert len(extended) == len(aligned) + 1

    def test_proper_start_is_not_extended(self, cat_sat_words):
        aligned = align_text_to_words(cat_sat_words, "Cat sat").words
        assert extend_to_sentence_start(cat_sat_words, aligned, "Cat sat") == aligned

    def test_punctuation_evidence_wins(self):
        source = [
            _w("It", 0.0, 0.2),
            _w("rained.", 0.2, 0.6),
            _w("and", 0.7, 0.9),
            _w("we", 0.9, 1.0),
            _w("left.", 1.0, 1.3),
        ]
        aligned = align_text_to_words(source, "and we left").words
        extended = extend_to_sentence_start(source, aligned, "and we left")
        assert [w.text for w in extended] == ["and", "we", "left."]

    def test_speaker_change_stops_extension(self):
        source = [
            _w("so", 0.0, 0.2, "A"),
            _w("we", 0.2, 0.4, "B"),
            _w("went", 0.4, 0.6, "B"),
        ]
        aligned = align_text_to_words(source, "we went").words
        extended = extend_to_sentence_start(source, aligned, "we went")
        assert [w.text for w in extended] == ["we", "went"]

    def test_long_pause_stops_extension(self):
        source = [
            _w("so", 0.0, 0.2),
            _w("we", 2.0, 2.2),
            _w("went", 2.2, 2.4),
        ]
        aligned = align_text_to_words(source, "we went").words
        extended = extend_to_sentence_start(source, aligned, "we went")
        assert [w.text for w in extended] == ["we", "went"]

    def test_input_is_not_mutated(self, cat_sat_words):
        aligned = align_text_to_words(cat_sat_words, "cat sat").words
        before = list(aligned)
        extend_to_sentence_start(cat_sat_words, aligned, "cat sat")
        assert aligned == before

    def test_empty_inputs(self, cat_sat_words):
        assert extend_to_sentence_start([], [_w("cat", 0.3, 0.6)], "cat") == [_w("cat", 0.3, 0.6)]
        assert extend_to_sentence_start(cat_sat_words, [], "cat") == []
