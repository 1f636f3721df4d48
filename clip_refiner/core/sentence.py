"""Sentence-boundary extension for clips that start mid-sentence.

WHY: Edit services are asked to keep complete sentences, but they regularly
open a clip on a fragment ("and then we...", "why I was thinking..."). A
clip that starts mid-thought is confusing to a viewer who has no context,
so when the evidence says the clip begins inside a sentence we pull in the
missing leading words from the source transcript.

HOW: Two steps.
  1. is_mid_sentence_start() decides, in priority order:
     a. edit text opens with a capitalised word that is not a conjunction
        -> proper sentence start, no extension
     b. the clip's first word is a listed starter word, or starts lowercase
        (the pronoun "I" excepted) -> mid-sentence
     c. the clip opens with "{why|what|how} I {verb}" -> mid-sentence
  2. extend_to_sentence_start() finds the clip's first word in the source
     (same normalised text, start within 0.5s), then walks backward until
     the preceding word ends a sentence, the pause exceeds 1.5s, or the
     speaker changes, and prepends the words it walked over.

RULES:
- Punctuation evidence wins: if the source word right before the clip ends
  a sentence, nothing is prepended even when step 1 flagged mid-sentence
- Prepended words are source words with their original timestamps
- Word lists come from config.SENTENCE_HEURISTICS, never hard-coded here
- Aligned input is never mutated; a new list is returned
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from clip_refiner.config import (
    EXTEND_LOCATE_TOLERANCE_SECONDS,
    EXTEND_MAX_GAP_SECONDS,
    SENTENCE_END_PATTERN,
    get_sentence_heuristics,
)
from clip_refiner.core.ir import Word
from clip_refiner.core.normalize import normalize_token

logger = logging.getLogger(__name__)

_SENTENCE_END_RE = re.compile(SENTENCE_END_PATTERN)
_LEADING_NON_ALNUM_RE = re.compile(r"^[^A-Za-z0-9]+")


def ends_sentence(text: str) -> bool:
    """True if the word ends with . ! or ? (optionally plus a closing quote/bracket)."""
    return bool(_SENTENCE_END_RE.search(text.strip()))


def _first_letter(text: str) -> str:
    stripped = _LEADING_NON_ALNUM_RE.sub("", text or "")
    return stripped[:1]


def _is_proper_start(edit_text: Optional[str], heuristics: Dict[str, Any]) -> bool:
    if not edit_text:
        return False
    parts = edit_text.split()
    if not parts:
        return False
    first = _first_letter(parts[0])
    if not first or not first.isupper():
        return False
    return normalize_token(parts[0]) not in heuristics["proper_start_exclusions"]


def _matches_question_pronoun(words: Sequence[Word], heuristics: Dict[str, Any]) -> bool:
    if len(words) < 3:
        return False
    first, second, third = (normalize_token(w.text) for w in words[:3])
    return (
        first in heuristics["question_words"]
        and second == heuristics["first_person_pronoun"]
        and third in heuristics["pronoun_verbs"]
    )


def is_mid_sentence_start(
    aligned_words: Sequence[Word],
    edit_text: Optional[str] = None,
    heuristics: Optional[Dict[str, Any]] = None,
) -> bool:
    """Decide whether an aligned clip opens inside a sentence.

    Args:
        aligned_words: Words recovered by the aligner, in clip order.
        edit_text: The freeform edit the words were aligned from.
        heuristics: Word lists (see config.SENTENCE_HEURISTICS); defaults
            to the configured language.

    Returns:
        True when the clip should be extended back to its sentence start.
    """
    if not aligned_words:
        return False
    if heuristics is None:
        heuristics = get_sentence_heuristics()

    if _is_proper_start(edit_text, heuristics):
        return False

    first_text = aligned_words[0].text
    first_token = normalize_token(first_text)
    if first_token in heuristics["mid_sentence_starters"]:
        return True

    letter = _first_letter(first_text)
    if letter and letter.islower() and first_token != heuristics["first_person_pronoun"]:
        return True

    return _matches_question_pronoun(aligned_words, heuristics)


def locate_word_index(
    source_words: Sequence[Word],
    word: Word,
    tolerance: float = EXTEND_LOCATE_TOLERANCE_SECONDS,
) -> int:
    """Find word in the source by normalised text and start-time proximity.

    Returns the index of the closest-in-time match within tolerance, or -1.
    """
    target = normalize_token(word.text)
    if not target:
        return -1
    best_index = -1
    best_delta = tolerance
    for index, candidate in enumerate(source_words):
        delta = abs(candidate.start - word.start)
        if delta > best_delta:
            continue
        if normalize_token(candidate.text) != target:
            continue
        if best_index == -1 or delta < best_delta:
            best_index = index
            best_delta = delta
    return best_index


def find_sentence_start(
    source_words: Sequence[Word],
    index: int,
    max_gap: float = EXTEND_MAX_GAP_SECONDS,
) -> int:
    """Walk backward from index to the first word of its sentence.

    Stops at the first position whose preceding word ends a sentence, is
    separated by more than max_gap seconds, or belongs to another speaker.
    """
    start = index
    while start > 0:
        previous = source_words[start - 1]
        current = source_words[start]
        if ends_sentence(previous.text):
            break
        if current.start - previous.end > max_gap:
            break
        if previous.speaker_id != current.speaker_id:
            break
        start -= 1
    return start


def extend_to_sentence_start(
    source_words: Sequence[Word],
    aligned_words: Sequence[Word],
    edit_text: Optional[str] = None,
    heuristics: Optional[Dict[str, Any]] = None,
    max_gap: float = EXTEND_MAX_GAP_SECONDS,
    tolerance: float = EXTEND_LOCATE_TOLERANCE_SECONDS,
) -> List[Word]:
    """Prepend the missing leading words of a clip that starts mid-sentence.

    RULES:
    - Returns a copy of aligned_words when no extension applies
    - The first aligned word must be locatable in the source (index > 0)
    - Extension never crosses a sentence end, a long pause or a speaker turn

    Args:
        source_words: Full time-ordered source transcript.
        aligned_words: Output of the aligner for this edit.
        edit_text: The freeform edit text.
        heuristics: Optional word lists; defaults to the configured language.
        max_gap: Largest pause (seconds) the backward walk may cross.
        tolerance: Start-time tolerance when locating the first word.

    Returns:
        New list of words, possibly with source words prepended.
    """
    result = list(aligned_words)
    if not source_words or not aligned_words:
        return result
    if not is_mid_sentence_start(aligned_words, edit_text, heuristics):
        return result

    index = locate_word_index(source_words, aligned_words[0], tolerance)
    if index <= 0:
        return result

    start = find_sentence_start(source_words, index, max_gap)
    if start >= index:
        return result

    prefix = [
        Word(text=w.text, start=w.start, end=w.end, speaker_id=w.speaker_id)
        for w in source_words[start:index]
    ]
    logger.info(
        "Extended clip start by %d word(s) to sentence start at %.2fs",
        len(prefix), prefix[0].start,
    )
    return prefix + result
