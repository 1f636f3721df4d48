"""Adapter: retimed engine words to caption cue library Word objects.

WHY: The engine's Word carries a speaker id and may contain standalone
punctuation tokens (some speech-to-text providers emit "," or "." as their
own word). The caption cue library expects plain text/start/end words with
punctuation attached, because its sentence and soft-break detection looks
at the end of each word's text.

HOW: Two transformations applied in order:
  1. Timing copy: Word.start/end are copied, with end clamped to >= start.
  2. Punctuation merging: standalone punctuation tokens are attached to
     the preceding word's text; the merged word's end time extends to the
     punctuation's end.

RULES:
- Input words are never modified.
- Blank words are dropped.
- A punctuation token with no preceding word is dropped.
- Words must already be on the output timeline (see core.timeline).
"""

import re
from typing import List, Sequence

from caption_cues.models import Word as CaptionWord
from clip_refiner.core.ir import Word

_PUNCTUATION_ONLY_RE = re.compile(r"^[.,?!;:…\"')\]]+$")


def words_to_caption_words(words: Sequence[Word]) -> List[CaptionWord]:
    """Convert output-timeline engine words into caption Word objects.

    Args:
        words: Retimed engine words, sorted by start.

    Returns:
        Caption Words ready for caption_cues.segment_captions().
    """
    result: List[CaptionWord] = []
    for word in words:
        text = word.text.strip()
        if not text:
            continue
        if _PUNCTUATION_ONLY_RE.match(text):
            if result:
                previous = result[-1]
                previous.text += text
                previous.end = max(previous.end, word.end)
            continue
        result.append(CaptionWord(text=text, start=word.start, end=max(word.start, word.end)))
    return result
