"""Core caption logic: sentence splitting, cue fitting, and SRT generation.

WHY: This module contains the whole cue pipeline, from a flat list of
timestamped words on the output timeline to ordered caption cues (and an
SRT string). Cues must stay legible: a bounded number of words, characters
and seconds on screen, broken at natural boundaries where possible.

HOW: Two-level greedy split:
  1. split_into_sentences(): starts a new sentence after a pause of at
     least sentence_gap seconds, and closes a sentence right after a word
     ending in terminal punctuation.
  2. chunk_words_into_cues(): sentences that fit the limits are packed into
     a pending cue, flushing before one that would overflow it. A sentence
     that alone overflows is cut by split_sentence_by_soft_breaks() at the
     last soft break (comma-class character or a pause of soft_break_gap),
     else right before the word that broke a limit.
generate_srt() renders cues as SRT.

RULES:
- ALL functions accept an explicit `config` dict parameter; no global state.
- Text content is never modified, only cue boundaries.
- Every cue of two or more words satisfies max_words, max_chars and
  max_duration. A single word that alone breaks a limit becomes its own cue.
- Cue start/duration come from the first/last word; duration is floored at
  min_cue_duration, then capped so a cue never runs past the next cue's
  start.
"""

import json
import re
from typing import Any, Dict, List, Sequence

from .models import CaptionCue, Word

# =============================================================================
# Measurements
# =============================================================================


def cue_text(words: Sequence[Word]) -> str:
    """Join word texts with single spaces."""
    return " ".join(w.text for w in words).strip()


def char_count(words: Sequence[Word]) -> int:
    """Characters of the joined text, counting one space between words."""
    return sum(len(w.text) for w in words) + max(0, len(words) - 1)


def span_duration(words: Sequence[Word]) -> float:
    """Seconds from the first word's start to the last word's end."""
    if not words:
        return 0.0
    return max(0.0, words[-1].end - words[0].start)


def fits_within_limits(words: Sequence[Word], config: Dict) -> bool:
    """True if the words fit in one cue under the configured limits."""
    return (
        len(words) <= config["max_words"]
        and char_count(words) <= config["max_chars"]
        and span_duration(words) <= config["max_duration"]
    )


def _is_sentence_end(word: Word, config: Dict) -> bool:
    return bool(re.search(config["sentence_end_pattern"], word.text.strip()))


def _is_soft_break(word: Word, config: Dict) -> bool:
    text = word.text.strip()
    return bool(text) and text[-1] in config["soft_break_chars"]


# =============================================================================
# Sentence splitting
# =============================================================================

def split_into_sentences(words: Sequence[Word], config: Dict) -> List[List[Word]]:
    """Group words into sentences by pauses and terminal punctuation."""
    sentences: List[List[Word]] = []
    current: List[Word] = []
    previous = None

    for word in words:
        if previous is not None and current:
            if word.start - previous.end >= config["sentence_gap"]:
                sentences.append(current)
                current = []
        current.append(word)
        if _is_sentence_end(word, config):
            sentences.append(current)
            current = []
        previous = word

    if current:
        sentences.append(current)
    return sentences


def split_sentence_by_soft_breaks(sentence: Sequence[Word], config: Dict) -> List[List[Word]]:
    """Cut an overflowing sentence into parts that fit the limits.

    WHY: A long sentence must be broken up, and a break after a comma or at
    a breath pause reads far better than a break at an arbitrary word.

    HOW: From the current start, grow the part word by word until adding a
    word would break a limit. While growing, remember the last soft break:
    a word ending in a soft-break character marks a cut after itself; a
    pause of at least soft_break_gap before a word marks a cut before it.
    On overflow, cut at the remembered soft break, else before the
    offending word, and continue from the cut.

    RULES:
    - Soft breaks are only remembered for words that fit, so a cut never
      includes the word that overflowed
    - A part always holds at least one word (single-word overflow)

    Args:
        sentence: Words of one sentence.
        config: Preset dict with the limits and break settings.

    Returns:
        Consecutive parts covering the sentence in order.
    """
    parts: List[List[Word]] = []
    start_index = 0
    total = len(sentence)

    while start_index < total:
        chars = 0
        last_soft_break = -1
        end_index = start_index
        start_time = sentence[start_index].start

        while end_index < total:
            word = sentence[end_index]
            chars += len(word.text) + (1 if end_index > start_index else 0)
            count = end_index - start_index + 1
            duration = max(0.0, word.end - start_time)
            if (
                count > config["max_words"]
                or chars > config["max_chars"]
                or duration > config["max_duration"]
            ):
                break
            if end_index > start_index:
                gap = word.start - sentence[end_index - 1].end
                if gap >= config["soft_break_gap"]:
                    last_soft_break = end_index - 1
            # a comma after this word wins over a pause before it
            if _is_soft_break(word, config):
                last_soft_break = end_index
            end_index += 1

        if end_index >= total:
            parts.append(list(sentence[start_index:]))
            break

        split_index = last_soft_break if last_soft_break >= start_index else end_index - 1
        split_index = max(split_index, start_index)
        parts.append(list(sentence[start_index:split_index + 1]))
        start_index = split_index + 1

    return parts


# =============================================================================
# Cue assembly
# =============================================================================

def _make_cue(words: Sequence[Word], config: Dict) -> CaptionCue:
    start = words[0].start
    duration = max(config["min_cue_duration"], words[-1].end - start)
    return CaptionCue(text=cue_text(words), start=start, duration=duration, word_count=len(words))


def chunk_words_into_cues(words: Sequence[Word], config: Dict) -> List[CaptionCue]:
    """Segment output-timeline words into legible caption cues.

    HOW: See module docstring. The pending cue is flushed before any
    sentence that has to be split, so split parts never merge with
    neighbouring sentences.

    Args:
        words: Time-ordered words on the output timeline.
        config: Preset dict (see presets.PRESETS).

    Returns:
        Ordered list of CaptionCue.
    """
    cues: List[CaptionCue] = []
    pending: List[Word] = []

    def flush() -> None:
        if pending and cue_text(pending):
            cues.append(_make_cue(pending, config))
        pending.clear()

    for sentence in split_into_sentences(words, config):
        if not fits_within_limits(sentence, config):
            flush()
            for part in split_sentence_by_soft_breaks(sentence, config):
                if part and cue_text(part):
                    cues.append(_make_cue(part, config))
            continue
        if pending and not fits_within_limits(pending + sentence, config):
            flush()
        pending.extend(sentence)

    flush()

    for cue, following in zip(cues, cues[1:]):
        cue.duration = max(0.0, min(cue.duration, following.start - cue.start))
    return cues


# =============================================================================
# Input Parsing
# =============================================================================

def parse_input(data: Any) -> List[Word]:
    """Parse input JSON into a flat word list.

    WHY: Word lists come from several producers with slightly different
    schemas. This function normalizes them into a uniform Word list.

    HOW: Accepts a flat list of word objects, a list of segments with nested
    'words' arrays, or an object with a top-level 'words' array. Field names
    are flexible: word/text/t for text, start/s for start, end/e for end.

    RULES:
    - Words with blank text are skipped.
    - end is clamped to be >= start.
    - Output is sorted by start time.

    Args:
        data: Parsed JSON data.

    Returns:
        Flat list of Word objects.
    """
    if isinstance(data, dict):
        data = data.get("words", [])

    words: List[Word] = []
    if not isinstance(data, list):
        return words

    def add(item: Dict[str, Any]) -> None:
        text = str(item.get("word", item.get("text", item.get("t", "")))).strip()
        if not text:
            return
        start = float(item.get("start", item.get("s", 0)))
        end = float(item.get("end", item.get("e", start)))
        words.append(Word(text=text, start=start, end=max(start, end)))

    for item in data:
        if not isinstance(item, dict):
            continue
        if "words" in item and isinstance(item["words"], list):
            for nested in item["words"]:
                if isinstance(nested, dict):
                    add(nested)
        elif any(k in item for k in ("word", "text", "t")):
            add(item)

    words.sort(key=lambda w: w.start)
    return words


def try_parse_json(raw: str) -> Any:
    """Try to parse JSON, attempting to fix incomplete input.

    WHY: Input files may be snippets from larger files with missing closing
    brackets. This function tries bracket completions to recover partial JSON.

    Raises:
        ValueError: If JSON cannot be parsed even with attempted fixes.
    """
    raw = raw.replace("\r\n", "\n").replace("\r", "\n").strip()
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    raw_clean = re.sub(r",\s*$", "", raw)
    for suffix in ("", "]", "}]", "}]}", "]}", "]}}", "]}]"):
        try:
            return json.loads(raw_clean + suffix)
        except json.JSONDecodeError:
            continue

    raise ValueError("Could not parse JSON input (even with attempted fixes)")


# =============================================================================
# SRT Output
# =============================================================================

def seconds_to_srt_time(seconds: float) -> str:
    """Format seconds as an SRT timestamp (HH:MM:SS,mmm)."""
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, rem = divmod(total_ms, 3600000)
    minutes, rem = divmod(rem, 60000)
    secs, ms = divmod(rem, 1000)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, secs, ms)


def generate_srt(cues: Sequence[CaptionCue]) -> str:
    """Generate SRT content from cues.

    RULES:
    - SRT indices are 1-based.
    - A cue never runs into the next one: end = min(end, next_start), never
      before its own start.
    """
    lines: List[str] = []
    for i, cue in enumerate(cues, 1):
        end = cue.end
        if i < len(cues):
            end = max(cue.start, min(end, cues[i].start))
        lines.append(str(i))
        lines.append("{} --> {}".format(seconds_to_srt_time(cue.start), seconds_to_srt_time(end)))
        lines.append(cue.text)
        lines.append("")
    return "\n".join(lines)
