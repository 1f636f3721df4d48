"""Timeline compression and word retiming.

WHY: Keep ranges are scattered across the source timeline, but the edited
clip plays them back-to-back. Captions and any other timed overlay must be
expressed on that compressed output timeline, so we need a mapping from
source intervals to output positions and a way to move words through it.

HOW: build_range_mappings() assigns each range a timeline_start equal to the
summed durations of the ranges before it. map_words_to_timeline() walks the
words and mappings together (both time-ordered) and re-expresses each word
that falls inside a mapping (with a 0.05s tolerance for alignment drift).

RULES:
- mapping[i].timeline_start + duration(i) == mapping[i+1].timeline_start
- Words outside every mapping belong to cut material and are dropped
- Retimed words keep their duration, floored at 0.05s
- offset into a mapping is never negative
"""

from typing import List, Sequence

from clip_refiner.config import MIN_WORD_DURATION_SECONDS, TIMELINE_TOLERANCE_SECONDS
from clip_refiner.core.ir import RangeMapping, TimeRange, Word


def build_range_mappings(ranges: Sequence[TimeRange]) -> List[RangeMapping]:
    """Place ordered, non-overlapping source ranges on one output timeline."""
    mappings: List[RangeMapping] = []
    accumulated = 0.0
    for rng in ranges:
        mappings.append(RangeMapping(start=rng.start, end=rng.end, timeline_start=accumulated))
        accumulated += rng.end - rng.start
    return mappings


def timeline_duration(mappings: Sequence[RangeMapping]) -> float:
    """Total length of the compressed output timeline."""
    return sum(m.end - m.start for m in mappings)


def map_words_to_timeline(
    words: Sequence[Word],
    mappings: Sequence[RangeMapping],
    tolerance: float = TIMELINE_TOLERANCE_SECONDS,
) -> List[Word]:
    """Re-express source-timed words on the compressed output timeline.

    HOW: A mapping cursor only moves forward: while the word starts beyond
    the current mapping's end (plus tolerance) and more mappings remain, the
    cursor advances. A word inside [start - tol, end + tol] of the current
    mapping is emitted at timeline_start + max(0, word.start - start).

    RULES:
    - No mappings -> words returned unchanged (nothing was cut)
    - Words must be time-ordered for the forward cursor to find them

    Args:
        words: Words with source-timeline timestamps, sorted by start.
        mappings: Output of build_range_mappings().
        tolerance: Slack in seconds around each mapping's bounds.

    Returns:
        New Word objects with output-timeline timestamps.
    """
    if not mappings:
        return list(words)

    index = 0
    mapped: List[Word] = []
    for word in words:
        mapping = mappings[index]
        while index < len(mappings) - 1 and word.start > mapping.end + tolerance:
            index += 1
            mapping = mappings[index]
        if mapping.start - tolerance <= word.start <= mapping.end + tolerance:
            offset = max(0.0, word.start - mapping.start)
            start = mapping.timeline_start + offset
            duration = max(MIN_WORD_DURATION_SECONDS, word.end - word.start)
            mapped.append(Word(
                text=word.text,
                start=start,
                end=start + duration,
                speaker_id=word.speaker_id,
            ))
    return mapped


def retime_words_sequentially(words: Sequence[Word]) -> List[Word]:
    """Lay words back-to-back from zero, keeping their durations.

    Fallback when no keep ranges could be built but captions are still
    wanted for the edited word stream.
    """
    cursor = 0.0
    retimed: List[Word] = []
    for word in words:
        duration = max(MIN_WORD_DURATION_SECONDS, word.end - word.start)
        retimed.append(Word(
            text=word.text,
            start=cursor,
            end=cursor + duration,
            speaker_id=word.speaker_id,
        ))
        cursor += duration
    return retimed
