"""Sequential text alignment of edited transcripts onto timestamped words.

WHY: The generative edit service answers with freeform text ("trimmed_text")
that only deletes words from the transcript. To cut video we need the
timestamps back, so every kept token has to be mapped onto the source word
it came from, keeping the source's timing, speaker and original spelling.

HOW: A monotonically advancing cursor walks the source list. For each
target token we scan forward from the cursor for the first source word with
the same normalised text; on a match the source word is emitted and the
cursor moves one past it. Tokens with no remaining match are dropped. The
cursor never resets, so alignment is linear in the common case.

RULES:
- Output words are source words: timestamps are never invented
- Output order follows source order (indices strictly increase)
- Unmatched tokens are dropped, counted and logged, never raised
- Duplicate source words bind to the earliest remaining occurrence
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from clip_refiner.config import (
    SENTENCE_END_PATTERN,
    SENTENCE_GAP_SECONDS,
    SENTENCE_MIN_COVERAGE,
)
from clip_refiner.core.ir import AlignmentResult, Word
from clip_refiner.core.normalize import normalize_token, tokenize_text

logger = logging.getLogger(__name__)

_SENTENCE_END_RE = re.compile(SENTENCE_END_PATTERN)


def _copy_word(word: Word) -> Word:
    return Word(text=word.text, start=word.start, end=word.end, speaker_id=word.speaker_id)


def align_text_to_words(
    source_words: Sequence[Word],
    target: Union[str, Iterable[str]],
) -> AlignmentResult:
    """Map an edited token stream back onto the source words.

    WHY: Freeform edits carry no timing. This recovers it by matching each
    kept token against the source transcript in order.

    HOW: See module docstring. target may be the raw edit text (tokenised
    here) or an already tokenised sequence (normalised again, which is a
    no-op for normalised tokens).

    RULES:
    - len(result.words) <= number of non-empty target tokens
    - Empty source or empty target -> empty result with match_ratio 0.0
    - Every missed token is logged at DEBUG; a summary at INFO

    Args:
        source_words: Time-ordered source transcript words.
        target: Edited text or its tokens.

    Returns:
        AlignmentResult with the matched source words, their indices, the
        match ratio and the list of missed tokens.
    """
    if isinstance(target, str):
        tokens = tokenize_text(target)
    else:
        tokens = [t for t in (normalize_token(tok) for tok in target) if t]

    if not source_words or not tokens:
        return AlignmentResult()

    normalized_source = [normalize_token(word.text) for word in source_words]

    cursor = 0
    words: List[Word] = []
    indices: List[int] = []
    missed: List[str] = []

    for token in tokens:
        match_index = -1
        for i in range(cursor, len(normalized_source)):
            if normalized_source[i] == token:
                match_index = i
                break
        if match_index == -1:
            logger.debug("Alignment miss: token %r has no match after index %d", token, cursor)
            missed.append(token)
            continue
        words.append(_copy_word(source_words[match_index]))
        indices.append(match_index)
        cursor = match_index + 1

    match_ratio = len(words) / len(tokens)
    if missed:
        logger.info(
            "Aligned %d of %d edit tokens (%.0f%%); %d dropped",
            len(words), len(tokens), match_ratio * 100, len(missed),
        )

    return AlignmentResult(
        words=words,
        indices=indices,
        match_ratio=match_ratio,
        missed_tokens=missed,
    )


def map_words_to_source(
    source_words: Sequence[Word],
    refined_words: Sequence[Word],
) -> List[Word]:
    """Re-anchor structured edit words onto the source transcript.

    WHY: When the edit service returns word objects, their timestamps and
    speaker ids cannot be trusted. The source is authoritative for timing
    and diarization; the edit is authoritative for display text.

    HOW: Same monotonic cursor as align_text_to_words, keyed by the
    normalised text of each refined word.

    RULES:
    - Returns refined_words unchanged when either list is empty
    - start/end come from the source; speaker_id from the source, falling
      back to the refined word's own speaker_id
    """
    if not source_words or not refined_words:
        return list(refined_words)

    normalized_source = [normalize_token(word.text) for word in source_words]
    cursor = 0
    mapped: List[Word] = []

    for word in refined_words:
        target = normalize_token(word.text)
        if not target:
            continue
        match_index = -1
        for i in range(cursor, len(normalized_source)):
            if normalized_source[i] == target:
                match_index = i
                break
        if match_index == -1:
            continue
        source = source_words[match_index]
        mapped.append(Word(
            text=word.text,
            start=max(0.0, source.start),
            end=max(source.start, source.end),
            speaker_id=source.speaker_id if source.speaker_id is not None else word.speaker_id,
        ))
        cursor = match_index + 1

    return mapped


def words_from_indices(source_words: Sequence[Word], indices: Iterable[int]) -> List[Word]:
    """Return copies of the source words at the given indices, in order given."""
    return [_copy_word(source_words[i]) for i in indices if 0 <= i < len(source_words)]


def build_sentence_index_ranges(source_words: Sequence[Word]) -> List[Tuple[int, int]]:
    """Group source word indices into sentences.

    A sentence ends at a word with terminal punctuation or before a pause of
    at least SENTENCE_GAP_SECONDS. Returns inclusive (first, last) word
    index pairs.
    """
    if not source_words:
        return []
    ranges: List[Tuple[int, int]] = []
    range_start = 0
    for index, word in enumerate(source_words):
        text = word.text.strip()
        ends = bool(text) and bool(_SENTENCE_END_RE.search(text))
        gap = 0.0
        if index + 1 < len(source_words):
            gap = source_words[index + 1].start - word.end
        if ends or gap >= SENTENCE_GAP_SECONDS:
            ranges.append((range_start, index))
            range_start = index + 1
    if range_start < len(source_words):
        ranges.append((range_start, len(source_words) - 1))
    return ranges


def filter_indices_by_sentence_coverage(
    source_words: Sequence[Word],
    indices: Sequence[int],
    min_coverage: float = SENTENCE_MIN_COVERAGE,
) -> List[int]:
    """Round an index selection out to whole source sentences.

    WHY: Edits that keep a few stray words of a sentence produce choppy,
    clipped cuts. Keeping whole sentences that are mostly covered (and
    dropping the rest) gives clean clip boundaries.

    HOW: For every source sentence touched by the selection compute the
    covered fraction. Sentences at or above min_coverage form the "strict"
    set; every touched sentence forms the "loose" set.

    RULES:
    - Empty selection or empty source -> selection returned unchanged
    - No strict sentences -> loose set (or the input when loose is empty)
    - Strict set smaller than max(5, floor(0.6 * len(indices))) -> loose set
    - Otherwise the strict set, sorted ascending
    """
    if not source_words or not indices:
        return list(indices)
    sentences = build_sentence_index_ranges(source_words)
    if not sentences:
        return list(indices)

    kept: Set[int] = set(indices)
    strict: Set[int] = set()
    loose: Set[int] = set()

    for sentence in sentences:
        first, last = sentence
        covered = sum(1 for i in range(first, last + 1) if i in kept)
        if not covered:
            continue
        total = last - first + 1
        members = range(first, last + 1)
        loose.update(members)
        if covered / total >= min_coverage:
            strict.update(members)

    strict_sorted = sorted(strict)
    loose_sorted = sorted(loose)
    if not strict_sorted:
        return loose_sorted if loose_sorted else list(indices)
    if len(strict_sorted) < max(5, int(len(indices) * 0.6)):
        return loose_sorted if loose_sorted else strict_sorted
    return strict_sorted


def words_from_index_ranges(
    source_words: Sequence[Word],
    keep_ranges: Optional[Sequence[Sequence[Any]]],
) -> List[Word]:
    """Expand inclusive word-index ranges ([[start, end], ...]) into words.

    Ranges are clamped into the source, reordered ascending, and merged when
    they overlap or touch. Malformed entries are skipped.
    """
    if not source_words or not keep_ranges:
        return []
    max_index = len(source_words) - 1
    parsed: List[Dict[str, int]] = []
    for entry in keep_ranges:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            continue
        try:
            a = int(entry[0])
            b = int(entry[1])
        except (TypeError, ValueError):
            continue
        a = min(max_index, max(0, a))
        b = min(max_index, max(0, b))
        parsed.append({"start": min(a, b), "end": max(a, b)})

    parsed.sort(key=lambda r: r["start"])
    merged: List[Dict[str, int]] = []
    for item in parsed:
        if merged and item["start"] <= merged[-1]["end"] + 1:
            merged[-1]["end"] = max(merged[-1]["end"], item["end"])
        else:
            merged.append(dict(item))

    words: List[Word] = []
    for item in merged:
        for index in range(item["start"], item["end"] + 1):
            word = source_words[index]
            if word.text.strip():
                words.append(_copy_word(word))
    return words
