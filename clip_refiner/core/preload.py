"""Preload script: export and re-import of a completed refinement pass.

WHY: Transcription, editing and face detection are slow and cost money. A
finished pass (source words, the edit, speaker snippets, detected face
slots and their thumbnails) is exported as one JSON document so it can be
cached or re-imported later and the assignment flow resumed without
repeating any of that work.

HOW: build_preload_script() assembles the version 1 document from engine
objects. validate_preload_script() checks a document against the bundled
JSON Schema (schemas/preload_script.schema.json) with jsonschema.
load_preload_script() parses JSON text, validates it and converts it back
into engine objects.

RULES:
- version must be exactly 1
- words, speakerSnippets and thumbnails must be present and non-empty;
  refinement must be present
- Every failure is reported as PreloadScriptError (a ValueError) carrying
  the path of the offending field
- primarySpeakerId and maxFaces are derived from faceSlotsBySpeaker when
  building, never trusted from the caller
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import jsonschema

from clip_refiner.core.ir import FaceCandidate, Refinement, SpeakerSnippet, Word, words_from_dicts
from clip_refiner.core.refinement import normalize_refinement
from clip_refiner.speakers.snippets import resolve_primary_speaker

logger = logging.getLogger(__name__)

PRELOAD_SCRIPT_VERSION = 1

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "preload_script.schema.json"

_CACHED_SCHEMA: Optional[dict] = None


def _get_schema() -> dict:
    """Load and cache the preload script JSON schema."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


class PreloadScriptError(ValueError):
    """Raised when a preload script is malformed or has the wrong version."""


@dataclass
class PreloadScript:
    """A validated preload script converted back into engine objects."""

    words: List[Word]
    refinement: Refinement
    speaker_snippets: List[SpeakerSnippet]
    faces_by_speaker: Dict[str, List[FaceCandidate]]
    thumbnails: List[Dict[str, Any]]
    primary_speaker_id: Optional[str] = None
    max_faces: int = 0
    refinement_mode: Optional[str] = None
    desired_variants: Optional[int] = None
    exported_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


def build_preload_script(
    words: Sequence[Word],
    refinement: Refinement,
    speaker_snippets: Sequence[SpeakerSnippet],
    faces_by_speaker: Dict[str, Sequence[FaceCandidate]],
    thumbnails: Sequence[Dict[str, Any]],
    refinement_mode: Optional[str] = None,
    desired_variants: Optional[int] = None,
    exported_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Assemble a version 1 preload script document.

    Args:
        words: Source transcript.
        refinement: The normalised edit.
        speaker_snippets: One snippet per speaker.
        faces_by_speaker: Face candidates per speaker, indexed by slot.
        thumbnails: Opaque thumbnail records ({"speakerId", "slotIndex", ...}).
        refinement_mode: Edit mode label, if any.
        desired_variants: Number of concept variants requested, if any.
        exported_at: Export time; defaults to now (UTC).

    Returns:
        A JSON-serialisable dict.
    """
    primary, max_faces = resolve_primary_speaker(faces_by_speaker)
    stamp = exported_at or datetime.now(timezone.utc)
    return {
        "version": PRELOAD_SCRIPT_VERSION,
        "refinementMode": refinement_mode,
        "desiredVariants": desired_variants,
        "words": [w.to_dict() for w in words],
        "refinement": refinement.to_dict(),
        "speakerSnippets": [s.to_dict() for s in speaker_snippets],
        "faceSlotsBySpeaker": {
            speaker_id: [f.to_dict() for f in faces]
            for speaker_id, faces in faces_by_speaker.items()
        },
        "thumbnails": [dict(t) for t in thumbnails],
        "primarySpeakerId": primary,
        "maxFaces": max_faces,
        "exportedAt": stamp.isoformat(),
    }


def validate_preload_script(data: Any) -> Dict[str, Any]:
    """Check a preload script document; return it unchanged when valid.

    Raises:
        PreloadScriptError: If the document fails the schema.
    """
    if not isinstance(data, dict):
        raise PreloadScriptError("Preload script must be a JSON object")
    if data.get("version") != PRELOAD_SCRIPT_VERSION:
        raise PreloadScriptError(
            "Unsupported preload script version: {!r} (expected {})".format(
                data.get("version"), PRELOAD_SCRIPT_VERSION
            )
        )
    try:
        jsonschema.validate(instance=data, schema=_get_schema())
    except jsonschema.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise PreloadScriptError("Invalid preload script at {}: {}".format(location, exc.message)) from exc
    return data


def parse_preload_script(data: Any) -> PreloadScript:
    """Validate a preload script document and convert it to engine objects."""
    validate_preload_script(data)
    words = words_from_dicts(data["words"])
    faces = {
        str(speaker_id): [FaceCandidate.from_dict(f) for f in entries]
        for speaker_id, entries in (data.get("faceSlotsBySpeaker") or {}).items()
    }
    primary, max_faces = resolve_primary_speaker(faces)
    script = PreloadScript(
        words=words,
        refinement=normalize_refinement(data["refinement"], words),
        speaker_snippets=[SpeakerSnippet.from_dict(s) for s in data["speakerSnippets"]],
        faces_by_speaker=faces,
        thumbnails=list(data["thumbnails"]),
        primary_speaker_id=primary,
        max_faces=max_faces,
        refinement_mode=data.get("refinementMode"),
        desired_variants=data.get("desiredVariants"),
        exported_at=data.get("exportedAt"),
        raw=data,
    )
    logger.info(
        "Loaded preload script: %d words, %d speakers, %d thumbnails",
        len(script.words), len(script.speaker_snippets), len(script.thumbnails),
    )
    return script


def load_preload_script(raw: str) -> PreloadScript:
    """Parse preload script JSON text.

    Raises:
        PreloadScriptError: If the text is not JSON or the document is invalid.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PreloadScriptError("Preload script is not valid JSON: {}".format(exc)) from exc
    return parse_preload_script(data)
