"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation. Pydantic
models enforce field types at runtime and generate JSON Schema that
appears in the /docs UI.

HOW: Each endpoint pair (request + response) has its own model. Enums
represent closed sets like output format names. All models include
Field descriptions for rich OpenAPI docs. Conversion to and from the
engine's dataclasses lives next to the models that need it.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Enum values match internal constants exactly (format keys)
- Response models never expose internal implementation details
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from clip_refiner.config import DEFAULT_CAPTION_PRESET
from clip_refiner.core.ir import FaceCandidate, SpeakerSnippet, Word


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OutputFormat(str, Enum):
    """Available output format identifiers.

    RULES:
    - Values match keys in clip_refiner.formatters.FORMATTERS exactly
    """

    cut_list = "cut_list"
    srt_captions = "srt_captions"
    plain_text = "plain_text"


# ---------------------------------------------------------------------------
# Shared shapes
# ---------------------------------------------------------------------------


class WordModel(BaseModel):
    """One timestamped transcript word."""

    text: str = Field(description="Word text with original casing and punctuation.")
    start: float = Field(ge=0, description="Start time in seconds.")
    end: float = Field(ge=0, description="End time in seconds.")
    speaker_id: Optional[str] = Field(default=None, description="Diarized speaker id, if known.")

    def to_word(self) -> Word:
        return Word(text=self.text, start=self.start, end=max(self.start, self.end), speaker_id=self.speaker_id)

    @classmethod
    def from_word(cls, word: Word) -> "WordModel":
        return cls(text=word.text, start=word.start, end=word.end, speaker_id=word.speaker_id)


class KeepRangeModel(BaseModel):
    """A source-timeline interval retained in the clip."""

    start: float = Field(description="Source start time in seconds.")
    end: float = Field(description="Source end time in seconds.")
    speaker_id: Optional[str] = Field(default=None, description="Dominant speaker in the range.")


class RangeMappingModel(BaseModel):
    """A keep range placed on the output timeline."""

    start: float = Field(description="Source start time in seconds.")
    end: float = Field(description="Source end time in seconds.")
    timeline_start: float = Field(description="Position of the range on the output timeline.")


class CaptionCueModel(BaseModel):
    """One caption cue on the output timeline."""

    text: str = Field(description="Cue text.")
    start: float = Field(description="Output-timeline start in seconds.")
    duration: float = Field(description="Display duration in seconds.")


class SpeakerSnippetModel(BaseModel):
    """A representative speaking window for one speaker."""

    id: str = Field(description="Speaker id ('unknown' for undiarized words).")
    label: str = Field(description="Display label, e.g. 'Speaker 1'.")
    start: float = Field(description="Snippet start on the source timeline.")
    end: float = Field(description="Snippet end on the source timeline.")

    def to_snippet(self) -> SpeakerSnippet:
        return SpeakerSnippet(id=self.id, label=self.label, start=self.start, end=self.end)

    @classmethod
    def from_snippet(cls, snippet: SpeakerSnippet) -> "SpeakerSnippetModel":
        return cls(id=snippet.id, label=snippet.label, start=snippet.start, end=snippet.end)


class FaceModel(BaseModel):
    """A detected face bounding box."""

    x: float = Field(description="Left edge.")
    y: float = Field(description="Top edge.")
    width: float = Field(ge=0, description="Box width.")
    height: float = Field(ge=0, description="Box height.")

    def to_face(self) -> FaceCandidate:
        return FaceCandidate(x=self.x, y=self.y, width=self.width, height=self.height)

    @classmethod
    def from_face(cls, face: FaceCandidate) -> "FaceModel":
        return cls(x=face.x, y=face.y, width=face.width, height=face.height)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RefinementRequest(BaseModel):
    """Source transcript plus an edit to reconcile.

    RULES:
    - Exactly one of edit_text / refinement must be given
    - total_duration defaults to the end of the last word
    """

    words: List[WordModel] = Field(min_length=1, description="Source transcript words, sorted by start.")
    edit_text: Optional[str] = Field(
        default=None,
        description="Freeform edited transcript (deletions only).",
    )
    refinement: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Edit service payload (trimmed_text, keep_ranges, trimmed_words, concepts...).",
    )
    total_duration: Optional[float] = Field(
        default=None,
        gt=0,
        description="Source media duration in seconds.",
    )
    min_clip_duration: Optional[float] = Field(
        default=None,
        ge=0,
        description="Drop keep ranges shorter than this many seconds.",
    )
    caption_preset: str = Field(
        default=DEFAULT_CAPTION_PRESET,
        description="Caption cue preset ('default' or 'compact').",
    )
    output_formats: Optional[List[OutputFormat]] = Field(
        default=None,
        description="Formatter outputs to render inline. Defaults to none.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "words": [
                    {"text": "The", "start": 0.0, "end": 0.3, "speaker_id": "A"},
                    {"text": "cat", "start": 0.3, "end": 0.6, "speaker_id": "A"},
                    {"text": "sat", "start": 0.6, "end": 0.9, "speaker_id": "A"},
                    {"text": "down.", "start": 0.9, "end": 1.2, "speaker_id": "A"},
                ],
                "edit_text": "cat sat",
                "min_clip_duration": 0,
            }
        ]
    }}


class SnippetRequest(BaseModel):
    """Speaker-labelled words to extract snippets from."""

    words: List[WordModel] = Field(description="Source transcript words.")
    total_duration: Optional[float] = Field(
        default=None,
        description="Media duration; snippet ends are clamped to it.",
    )


class AssignmentBeginRequest(BaseModel):
    """Inputs for starting the speaker-to-face assignment flow."""

    snippets: List[SpeakerSnippetModel] = Field(description="One snippet per speaker, in queue order.")
    faces_by_speaker: Dict[str, List[FaceModel]] = Field(
        default_factory=dict,
        description="Face candidates detected in each speaker's snippet, indexed by slot.",
    )


class FaceSelectionRequest(BaseModel):
    """A face slot picked for the active speaker."""

    slot_index: int = Field(ge=0, description="Index of the chosen face slot.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class RefinementResponse(BaseModel):
    """The planned clip: ranges, timeline mappings, captions."""

    words: List[WordModel] = Field(description="Kept words on the source timeline.")
    keep_ranges: List[KeepRangeModel] = Field(description="Source ranges to keep, split by speaker.")
    mappings: List[RangeMappingModel] = Field(description="Keep ranges placed on the output timeline.")
    captions: List[CaptionCueModel] = Field(description="Caption cues on the output timeline.")
    total_duration: float = Field(description="Source media duration in seconds.")
    output_duration: float = Field(description="Length of the output timeline in seconds.")
    hook: Optional[str] = Field(default=None, description="Hook line for the clip: the edit payload's hook, else built from the opening kept words.")
    default_concept_id: Optional[str] = Field(default=None, description="Concept the words were taken from, if any.")
    outputs: Dict[str, str] = Field(
        default_factory=dict,
        description="Rendered formatter outputs keyed by file suffix.",
    )


class SnippetResponse(BaseModel):
    """Speaker snippets for identification."""

    speaker_count: int = Field(description="Number of distinct speakers.")
    snippets: List[SpeakerSnippetModel] = Field(description="One snippet per speaker.")


class AssignmentResponse(BaseModel):
    """Current state of an assignment flow.

    RULES:
    - queue / available_slots / active_speaker are only set while the
      state is 'awaiting_confirmation'
    - faces is only set once the state is 'resolved'
    """

    id: str = Field(description="Assignment session id.")
    state: str = Field(description="'awaiting_confirmation' or 'resolved'.")
    queue: List[str] = Field(default_factory=list, description="Speakers still to be placed.")
    available_slots: List[int] = Field(default_factory=list, description="Face slots still free.")
    active_speaker: Optional[str] = Field(default=None, description="Speaker being asked about.")
    assignment: Dict[str, int] = Field(default_factory=dict, description="Speaker id -> face slot index.")
    faces: Optional[Dict[str, FaceModel]] = Field(
        default=None,
        description="Resolved face per speaker (falls back to slot 0 for unassigned speakers).",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "state": "awaiting_confirmation",
                "queue": ["B", "C"],
                "available_slots": [0, 2],
                "active_speaker": "B",
                "assignment": {"A": 1},
                "faces": None,
            }
        ]
    }}


class PreloadValidationResponse(BaseModel):
    """Summary of a valid preload script."""

    valid: bool = Field(description="Always true; invalid scripts return 400.")
    word_count: int = Field(description="Number of source words.")
    speaker_count: int = Field(description="Number of speaker snippets.")
    thumbnail_count: int = Field(description="Number of face thumbnails.")
    primary_speaker_id: Optional[str] = Field(default=None, description="Speaker with the most faces.")
    max_faces: int = Field(description="Face count of the primary speaker.")


class FormatInfo(BaseModel):
    """Description of an available output format."""

    key: str = Field(description="Format identifier used in API requests.")
    name: str = Field(description="Human-readable format name.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
