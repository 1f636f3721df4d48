"""Plain text formatter for the kept transcript, with speaker paragraphs.

WHY: Editors want to read what the clip says without opening the video:
no timecodes, just the kept words grouped by speaker turn.

HOW: Walks the plan's edited words in order. Each contiguous run of words
from the same speaker becomes one paragraph under a "Speaker N:" header,
numbered by first appearance (the same labels as the speaker snippets).
Standalone punctuation tokens are merged onto the preceding word.

RULES:
- One paragraph per speaker turn
- Header format: "Speaker N:" on its own line, text on the next line
- Double newline between paragraphs
- Output suffix: "-transcript.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from clip_refiner.config import UNKNOWN_SPEAKER_ID
from clip_refiner.core.ir import Word
from clip_refiner.formatters.base import BaseFormatter, FormatterOutput
from clip_refiner.pipeline import ClipPlan

# Punctuation characters that merge onto the preceding word with no space.
_MERGE_PUNCTUATION = frozenset({".", ",", "?", "!", ";", ":", "…"})


def _merge_words_to_text(words: Sequence[Word]) -> str:
    parts: List[str] = []
    for word in words:
        text = word.text.strip()
        if not text:
            continue
        if parts and text in _MERGE_PUNCTUATION:
            parts[-1] += text
        else:
            parts.append(text)
    return " ".join(parts)


class PlainTextFormatter(BaseFormatter):
    """Formatter that produces speaker-labeled plain text paragraphs."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, plan: ClipPlan) -> List[FormatterOutput]:
        labels: Dict[str, str] = {}
        paragraphs: List[str] = []
        current_speaker: Optional[str] = None
        current_words: List[Word] = []

        def flush() -> None:
            text = _merge_words_to_text(current_words)
            if text:
                paragraphs.append("{}:\n{}".format(labels[current_speaker], text))

        for word in plan.words:
            speaker = word.speaker_id if word.speaker_id is not None else UNKNOWN_SPEAKER_ID
            if speaker not in labels:
                labels[speaker] = "Speaker {}".format(len(labels) + 1)
            if speaker != current_speaker and current_words:
                flush()
                current_words = []
            current_speaker = speaker
            current_words.append(word)
        if current_words:
            flush()

        content = "\n\n".join(paragraphs)
        if content:
            content += "\n"
        return [FormatterOutput(
            suffix="-transcript.txt",
            content=content,
            media_type="text/plain",
        )]
