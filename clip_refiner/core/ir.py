"""Intermediate representation dataclasses for clip planning.

WHY: The aligner, range builder, timeline compressor, caption adapter,
snippet extractor and assignment state machine all pass the same handful of
shapes between each other: timestamped words, time ranges, timeline
mappings, speaker snippets and face candidates. A single, well-typed set of
dataclasses keeps those contracts explicit and lets every stage be tested
in isolation.

HOW: Plain dataclasses, one per concept:
  Word           - one transcript word with source timing and speaker
  TimeRange      - a [start, end) interval on the source timeline
  RangeMapping   - a TimeRange plus its position on the output timeline
  SpeakerSnippet - one representative speaking window per speaker
  FaceCandidate  - an opaque face bounding box from the external detector
  ConceptChoice  - one edit variant from the generative edit service
  Refinement     - the normalised edit payload
  AlignmentResult- words recovered from a freeform edit plus match stats

RULES:
- All times are float seconds
- A source word list is sorted by start and never mutated after creation
- speaker_id is None when diarization is unavailable; consumers that need a
  label use config.UNKNOWN_SPEAKER_ID
- to_dict()/from_dict() use the JSON field names of the upstream services
  (speaker_id, timelineStart) so payloads round-trip unchanged
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Word:
    """A single timestamped transcript word.

    RULES:
    - text keeps original casing and punctuation (never normalised here)
    - end >= start
    """

    text: str
    start: float
    end: float
    speaker_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "speaker_id": self.speaker_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Word":
        start = float(data.get("start", 0.0))
        end = float(data.get("end", start))
        speaker = data.get("speaker_id", data.get("speaker"))
        return cls(
            text=str(data.get("text", data.get("word", ""))),
            start=start,
            end=max(start, end),
            speaker_id=str(speaker) if speaker is not None else None,
        )


@dataclass
class TimeRange:
    """A contiguous interval on the source timeline."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end}


@dataclass
class RangeMapping:
    """A source interval placed on the compressed output timeline.

    RULES:
    - timeline_start of mapping i+1 equals timeline_start + duration of i
    """

    start: float
    end: float
    timeline_start: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def timeline_end(self) -> float:
        return self.timeline_start + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "timelineStart": self.timeline_start,
        }


@dataclass
class SpeakerSnippet:
    """A representative speaking window used to identify a speaker.

    RULES:
    - label is "Speaker N", numbered by order of first appearance
    - end - start >= the configured minimum unless clamped by total duration
    """

    id: str
    label: str
    start: float
    end: float

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpeakerSnippet":
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", data["id"])),
            start=float(data["start"]),
            end=float(data["end"]),
        )


@dataclass
class FaceCandidate:
    """A detected face bounding box, in normalised or pixel units.

    Owned by the external face detector; the engine only stores and hands
    these back keyed by (speaker id, slot index).
    """

    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FaceCandidate":
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )


@dataclass
class ConceptChoice:
    """One edit variant proposed by the generative edit service."""

    id: str
    title: str
    trimmed_words: List[Word] = field(default_factory=list)
    description: Optional[str] = None
    hook: Optional[str] = None
    notes: Optional[str] = None
    estimated_duration_seconds: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "hook": self.hook,
            "trimmed_words": [w.to_dict() for w in self.trimmed_words],
            "notes": self.notes,
            "estimated_duration_seconds": self.estimated_duration_seconds,
        }


@dataclass
class Refinement:
    """The normalised edit: trimmed words plus optional concept variants.

    RULES:
    - trimmed_words always carry source timestamps (never invented)
    - default_concept_id is None or the id of an entry in concepts
    """

    trimmed_words: List[Word] = field(default_factory=list)
    hook: Optional[str] = None
    notes: Optional[str] = None
    estimated_duration_seconds: Optional[float] = None
    concepts: List[ConceptChoice] = field(default_factory=list)
    default_concept_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hook": self.hook,
            "trimmed_words": [w.to_dict() for w in self.trimmed_words],
            "notes": self.notes,
            "estimated_duration_seconds": self.estimated_duration_seconds,
            "concepts": [c.to_dict() for c in self.concepts],
            "default_concept_id": self.default_concept_id,
        }


@dataclass
class AlignmentResult:
    """Words recovered from a freeform edit, with alignment statistics.

    RULES:
    - indices[i] is the source index of words[i]; strictly increasing
    - match_ratio = matched tokens / total tokens (0.0 when no tokens)
    - missed_tokens lists the normalised tokens that found no match
    """

    words: List[Word] = field(default_factory=list)
    indices: List[int] = field(default_factory=list)
    match_ratio: float = 0.0
    missed_tokens: List[str] = field(default_factory=list)


def words_from_dicts(items: Optional[List[Dict[str, Any]]]) -> List[Word]:
    """Build Word objects from a list of JSON dicts, skipping blank text."""
    words: List[Word] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        word = Word.from_dict(item)
        word.text = word.text.strip()
        if word.text:
            words.append(word)
    return words
