"""Keep-range construction and speaker-aware range splitting.

WHY: The video engine cuts source media by time, not by words. The aligned
edit has to become a short list of source-timeline intervals to keep, and
intervals that span a speaker turn have to be split so that each clip can
be framed on a single speaker.

HOW: build_keep_ranges() re-locates every edit word in the source with a
forward-only cursor; consecutive source indices extend the open range and
any jump closes it and opens a new one. Ranges are clamped to the media
duration and ranges shorter than the minimum are dropped.
split_ranges_by_speaker() walks the words overlapping each range and cuts a
sub-range at every speaker change.

RULES:
- Ranges come out ordered and non-overlapping (forward-only matching)
- Minimum range duration is max(0.01, min_range_duration)
- Clamp upper bound is max(total_duration, last source word end)
- A None speaker id counts as the "unknown" pseudo-speaker
- Sub-ranges shorter than 0.01s are dropped; a range whose split yields
  nothing passes through unchanged
"""

from __future__ import annotations

from collections import Counter
from typing import List, Optional, Sequence

from clip_refiner.config import (
    MIN_CLIP_DURATION_SECONDS,
    SPLIT_MIN_DURATION_SECONDS,
    UNKNOWN_SPEAKER_ID,
)
from clip_refiner.core.ir import TimeRange, Word
from clip_refiner.core.normalize import normalize_token


def _speaker_key(word: Word) -> str:
    return word.speaker_id if word.speaker_id is not None else UNKNOWN_SPEAKER_ID


def build_keep_ranges(
    source_words: Sequence[Word],
    refined_words: Sequence[Word],
    total_duration: float,
    min_range_duration: float = 0.0,
) -> List[TimeRange]:
    """Convert an aligned word stream into merged source-timeline ranges.

    WHY: The edit keeps runs of consecutive source words. Each unbroken run
    is one clip to cut from the source media.

    HOW: Forward-only search for each refined word's normalised text. If
    the matched index is exactly one past the previous match, the current
    range grows to the new word's end; otherwise the current range is
    closed and a new one starts at the new word's start.

    RULES:
    - Empty source or empty refined words -> []
    - Refined words with empty normalised text are skipped
    - Unmatched refined words are skipped

    Args:
        source_words: Full time-ordered source transcript.
        refined_words: Aligned (and possibly extended) edit words.
        total_duration: Media duration in seconds.
        min_range_duration: Ranges shorter than this are discarded.

    Returns:
        Ordered list of TimeRange on the source timeline.
    """
    if not source_words or not refined_words:
        return []

    clamp_end = max(total_duration, source_words[-1].end)
    min_duration = max(SPLIT_MIN_DURATION_SECONDS, min_range_duration)
    normalized_source = [normalize_token(word.text) for word in source_words]

    search_index = 0
    last_matched = -2
    current: Optional[TimeRange] = None
    ranges: List[TimeRange] = []

    for refined in refined_words:
        target = normalize_token(refined.text)
        if not target:
            continue
        match_index = -1
        for i in range(search_index, len(normalized_source)):
            if normalized_source[i] == target:
                match_index = i
                break
        if match_index == -1:
            continue
        search_index = match_index + 1
        matched = source_words[match_index]
        start = max(0.0, matched.start)
        end = max(matched.start, matched.end)
        if current is not None and match_index == last_matched + 1:
            current.end = end
        else:
            if current is not None:
                ranges.append(current)
            current = TimeRange(start=start, end=end)
        last_matched = match_index

    if current is not None:
        ranges.append(current)

    clamped = [
        TimeRange(
            start=max(0.0, min(r.start, clamp_end)),
            end=max(0.0, min(r.end, clamp_end)),
        )
        for r in ranges
    ]
    return [r for r in clamped if r.end - r.start >= min_duration]


def sum_range_durations(ranges: Sequence[TimeRange]) -> float:
    """Total seconds covered by the ranges."""
    return sum(r.end - r.start for r in ranges)


def calculate_duration_from_words(
    source_words: Sequence[Word],
    refined_words: Sequence[Word],
    total_duration: float,
    min_range_duration: float = MIN_CLIP_DURATION_SECONDS,
) -> float:
    """Output duration an edit would produce once cut."""
    ranges = build_keep_ranges(source_words, refined_words, total_duration, min_range_duration)
    return sum_range_durations(ranges)


def resolve_speaker_for_range(rng: TimeRange, words: Sequence[Word]) -> Optional[str]:
    """Return the dominant speaker among words overlapping the range.

    The "unknown" pseudo-speaker only wins when no known speaker overlaps.
    Ties go to the speaker seen first. Returns None when nothing overlaps.
    """
    counts: Counter = Counter()
    for word in words:
        if word.start >= rng.end or word.end <= rng.start:
            continue
        counts[_speaker_key(word)] += 1
    if not counts:
        return None
    if len(counts) > 1 and UNKNOWN_SPEAKER_ID in counts:
        del counts[UNKNOWN_SPEAKER_ID]
    return counts.most_common(1)[0][0]


def split_ranges_by_speaker(
    ranges: Sequence[TimeRange],
    words: Sequence[Word],
    min_duration: float = SPLIT_MIN_DURATION_SECONDS,
) -> List[TimeRange]:
    """Split ranges at speaker turns so each has a single dominant speaker.

    WHY: Per-speaker framing (crop to the active speaker's face) needs every
    clip to belong to one speaker.

    HOW: For each range, collect words overlapping it. With one distinct
    speaker the range passes through. Otherwise walk the overlapping words;
    at every speaker change close a sub-range at the changing word's start
    and open a new one there.

    RULES:
    - Empty ranges or empty words -> ranges returned unchanged
    - Sub-ranges are clipped to the parent range
    - Sub-ranges shorter than min_duration are dropped
    """
    if not ranges or not words:
        return list(ranges)
    sorted_words = sorted(words, key=lambda w: w.start)
    result: List[TimeRange] = []

    for rng in ranges:
        overlapping = [w for w in sorted_words if w.start < rng.end and w.end > rng.start]
        if not overlapping or len({_speaker_key(w) for w in overlapping}) <= 1:
            result.append(rng)
            continue

        segments: List[TimeRange] = []
        current_speaker = _speaker_key(overlapping[0])
        segment_start = rng.start

        for word in overlapping:
            speaker = _speaker_key(word)
            if speaker == current_speaker:
                continue
            segment_end = min(rng.end, word.start)
            if segment_end - segment_start >= min_duration:
                segments.append(TimeRange(start=segment_start, end=segment_end))
            current_speaker = speaker
            segment_start = max(rng.start, word.start)

        if rng.end - segment_start >= min_duration:
            segments.append(TimeRange(start=segment_start, end=rng.end))

        result.extend(segments if segments else [rng])

    return result
