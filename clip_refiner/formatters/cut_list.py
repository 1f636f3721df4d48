"""Cut list formatter: keep ranges, timeline mappings and cues as JSON.

WHY: The video rendering engine needs a machine-readable description of the
edit: which source intervals to cut, where each lands on the output
timeline, and the caption cues to burn in. A schema-checked JSON document
is the hand-off contract.

HOW: Serialises the ClipPlan into camelCase JSON (the engine's field names)
and validates the document against schemas/cut_list.schema.json with
jsonschema before returning it.

RULES:
- Always produces ONE file: {stem}-cut-list.json
- version is 1
- Each keep range carries the dominant speakerId (null if unknown)
- Raises jsonschema.ValidationError if the generated document is invalid
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from clip_refiner.formatters.base import BaseFormatter, FormatterOutput
from clip_refiner.pipeline import ClipPlan

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "cut_list.schema.json"

_CACHED_SCHEMA: Optional[dict] = None


def _get_schema() -> dict:
    """Load and cache the cut list JSON schema."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def _round(value: float) -> float:
    return round(value, 3)


def build_cut_list(plan: ClipPlan) -> Dict[str, Any]:
    """Return the cut list document for a plan (not yet validated)."""
    speakers = plan.range_speakers or [None] * len(plan.keep_ranges)
    keep_ranges: List[Dict[str, Any]] = [
        {"start": _round(r.start), "end": _round(r.end), "speakerId": speaker}
        for r, speaker in zip(plan.keep_ranges, speakers)
    ]
    return {
        "version": 1,
        "totalDuration": _round(plan.total_duration),
        "outputDuration": _round(plan.output_duration),
        "keepRanges": keep_ranges,
        "mappings": [
            {
                "start": _round(m.start),
                "end": _round(m.end),
                "timelineStart": _round(m.timeline_start),
            }
            for m in plan.mappings
        ],
        "captions": [
            {"text": c.text, "start": _round(c.start), "duration": _round(c.duration)}
            for c in plan.captions
        ],
    }


class CutListFormatter(BaseFormatter):
    """Formatter that produces the JSON cut list for the rendering engine."""

    @property
    def name(self) -> str:
        return "Cut List JSON"

    def format(self, plan: ClipPlan) -> List[FormatterOutput]:
        document = build_cut_list(plan)
        jsonschema.validate(instance=document, schema=_get_schema())
        return [FormatterOutput(
            suffix="-cut-list.json",
            content=json.dumps(document, indent=2, ensure_ascii=False),
            media_type="application/json",
        )]
