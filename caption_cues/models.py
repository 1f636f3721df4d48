"""Data models for the caption cue library.

WHY: The cue segmenter is a standalone library with no dependency on the
clip engine, so it defines its own minimal input and output shapes. Callers
(the clip engine's caption adapter, the CLI, tests) convert into these.

HOW: Word is one timestamped word on the output timeline; CaptionCue is one
timed on-screen text unit produced by the segmenter.

RULES:
- Word.text is sacred; never modify, paraphrase, or reorder word text.
- Timestamps are in seconds (float), not milliseconds.
- Cues are ordered and non-overlapping; duration is at least the preset's
  min_cue_duration.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class Word:
    """A single timestamped word on the output timeline.

    Attributes:
        text: The word text (never modified by the segmenter).
        start: Start time in seconds.
        end: End time in seconds.
    """
    text: str
    start: float
    end: float


@dataclass
class CaptionCue:
    """One caption cue: the joined text of its words plus timing.

    Attributes:
        text: Words joined with single spaces.
        start: Start of the first word, in seconds.
        duration: Last word end minus first word start (floored).
        word_count: Number of words in the cue.
    """
    text: str
    start: float
    duration: float
    word_count: int = 0

    @property
    def end(self) -> float:
        return self.start + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "start": self.start, "duration": self.duration}
