"""Source transcript extraction from speech-to-text payloads.

WHY: The engine works on one flat, time-sorted Word list, but speech-to-text
providers answer with their own JSON shapes: words at the top level, words
nested inside segments, speaker labels on the word or only on the segment,
spacing and sound-event pseudo-words mixed in, and the odd missing
timestamp. This module is the single place that turns those payloads into
the source transcript, and that turns the source transcript back into the
prompt text sent to the edit service.

HOW: Each provider is described by a small dict (PROVIDERS) saying which
keys carry the word text and which word types to skip.
extract_transcript_words() collects direct and segment-nested entries,
applies the provider rules, repairs timing and sorts by start.

RULES:
- Output is sorted by start and contains no blank words
- A missing start becomes end - 0.2; a missing end becomes start + 0.2;
  neither -> start 0.0
- start is clamped to >= 0 and end to >= start
- Speaker ids are stripped strings; numeric ids are stringified; blank -> None
- A word's own speaker wins over its segment's speaker
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Sequence

from clip_refiner.config import SENTENCE_END_PATTERN, SENTENCE_GAP_SECONDS
from clip_refiner.core.ir import Word

logger = logging.getLogger(__name__)

MISSING_TIME_PAD_SECONDS = 0.2
TEXT_FALLBACK_SECONDS_PER_WORD = 0.35

PROVIDERS: Dict[str, Dict[str, Any]] = {
    "elevenlabs": {
        "text_keys": ("text",),
        "skip_types": {"spacing", "audio_event"},
    },
    "openai": {
        "text_keys": ("word", "text"),
        "skip_types": set(),
    },
}

_SENTENCE_END_RE = re.compile(SENTENCE_END_PATTERN)


def _parse_time(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def normalize_speaker_id(value: Any) -> Optional[str]:
    """Return a clean speaker id string, or None when absent or blank."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return str(value)
    return None


def _word_text(raw: Dict[str, Any], text_keys: Sequence[str]) -> str:
    for key in text_keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def extract_transcript_words(
    payload: Optional[Dict[str, Any]],
    provider: str = "elevenlabs",
) -> List[Word]:
    """Build the source transcript from a speech-to-text response.

    Args:
        payload: Parsed JSON response with "words" and/or "segments".
        provider: Key in PROVIDERS ("elevenlabs" or "openai").

    Returns:
        Time-sorted list of Word.

    Raises:
        ValueError: If provider is not recognized.
    """
    if provider not in PROVIDERS:
        raise ValueError(
            "Unknown transcript provider '{}'. Available: {}".format(
                provider, ", ".join(sorted(PROVIDERS))
            )
        )
    if not isinstance(payload, dict):
        return []
    rules = PROVIDERS[provider]

    entries = []
    for raw in payload.get("words") or []:
        entries.append((raw, None))
    for segment in payload.get("segments") or []:
        if not isinstance(segment, dict):
            continue
        segment_speaker = segment.get("speaker_id", segment.get("speaker"))
        for raw in segment.get("words") or []:
            entries.append((raw, segment_speaker))

    words: List[Word] = []
    skipped = 0
    for raw, segment_speaker in entries:
        if not isinstance(raw, dict):
            continue
        text = _word_text(raw, rules["text_keys"])
        if not text:
            continue
        if raw.get("type") in rules["skip_types"]:
            skipped += 1
            continue

        start = _parse_time(raw.get("start"))
        end = _parse_time(raw.get("end"))
        if start is None:
            start = end - MISSING_TIME_PAD_SECONDS if end is not None else 0.0
        if end is None:
            end = start + MISSING_TIME_PAD_SECONDS
        start = max(0.0, start)

        speaker = raw.get("speaker_id", raw.get("speaker"))
        if speaker is None:
            speaker = segment_speaker
        words.append(Word(
            text=text,
            start=start,
            end=max(end, start),
            speaker_id=normalize_speaker_id(speaker),
        ))

    words.sort(key=lambda w: w.start)
    logger.debug(
        "Extracted %d %s words (%d non-verbal skipped)", len(words), provider, skipped
    )
    return words


def build_transcript_words_from_text(
    text: Optional[str],
    total_duration: Optional[float] = None,
) -> List[Word]:
    """Spread plain transcript text evenly over the media duration.

    Used when a provider returns text without word timestamps. Without a
    positive duration each word gets TEXT_FALLBACK_SECONDS_PER_WORD. The
    last word always ends exactly at the (assumed) duration.
    """
    if not isinstance(text, str):
        return []
    tokens = text.split()
    if not tokens:
        return []
    if total_duration is not None and math.isfinite(total_duration) and total_duration > 0:
        duration = float(total_duration)
    else:
        duration = len(tokens) * TEXT_FALLBACK_SECONDS_PER_WORD
    step = duration / len(tokens)

    words: List[Word] = []
    cursor = 0.0
    for index, token in enumerate(tokens):
        start = cursor
        end = duration if index == len(tokens) - 1 else start + step
        words.append(Word(text=token, start=max(0.0, start), end=max(end, start)))
        cursor = end
    return words


def build_transcript_text(source_words: Sequence[Word]) -> str:
    """Render the source transcript as paragraphed prompt text.

    A blank line follows every word that ends a sentence or precedes a
    pause of at least SENTENCE_GAP_SECONDS.
    """
    paragraphs: List[List[str]] = [[]]
    for index, word in enumerate(source_words):
        text = word.text.strip()
        if not text:
            continue
        paragraphs[-1].append(text)
        gap = 0.0
        if index + 1 < len(source_words):
            gap = source_words[index + 1].start - word.end
        if _SENTENCE_END_RE.search(text) or gap >= SENTENCE_GAP_SECONDS:
            paragraphs.append([])
    return "\n\n".join(" ".join(p) for p in paragraphs if p)
