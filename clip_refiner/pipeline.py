"""End-to-end clip planning: edit in, cut list and captions out.

WHY: Callers (CLI, HTTP API, tests) want one call that turns a source
transcript plus an edit into everything the video engine needs: which
source ranges to keep, where they land on the output timeline, and the
caption cues for that timeline. Each stage lives in its own module; this
module only wires them together in the right order.

HOW: build_clip_plan() runs, for an already-timed word list:
  keep ranges -> speaker split -> range mappings -> retimed words -> cues
refine_clip() first gets the timed words from the edit: freeform text is
aligned and extended to the sentence start; a refinement payload (dict) is
normalised by core.refinement.

RULES:
- An edit that aligns to nothing yields an empty ClipPlan (logged as a
  warning), never an exception
- When no keep range survives the minimum duration, captions fall back to
  the edited words laid back-to-back from zero
- Every stage is pure; the same inputs give the same plan
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from caption_cues import CaptionCue, segment_captions
from clip_refiner.adapters.caption_adapter import words_to_caption_words
from clip_refiner.config import DEFAULT_CAPTION_PRESET, MIN_CLIP_DURATION_SECONDS
from clip_refiner.core.aligner import align_text_to_words
from clip_refiner.core.ir import RangeMapping, Refinement, TimeRange, Word
from clip_refiner.core.ranges import (
    build_keep_ranges,
    resolve_speaker_for_range,
    split_ranges_by_speaker,
)
from clip_refiner.core.refinement import build_hook_text_from_words, normalize_refinement
from clip_refiner.core.sentence import extend_to_sentence_start
from clip_refiner.core.timeline import (
    build_range_mappings,
    map_words_to_timeline,
    retime_words_sequentially,
    timeline_duration,
)

logger = logging.getLogger(__name__)


@dataclass
class ClipPlan:
    """Everything needed to cut and caption one edited clip.

    Attributes:
        words: Edited words on the source timeline.
        keep_ranges: Speaker-split source ranges to keep.
        range_speakers: Dominant speaker of each keep range.
        mappings: keep_ranges placed on the output timeline.
        retimed_words: words on the output timeline.
        captions: Caption cues on the output timeline.
        total_duration: Source media duration.
        refinement: The normalised edit, when the edit was a payload.
        hook: Opening line for the clip; None for an empty plan.
    """

    words: List[Word] = field(default_factory=list)
    keep_ranges: List[TimeRange] = field(default_factory=list)
    range_speakers: List[Optional[str]] = field(default_factory=list)
    mappings: List[RangeMapping] = field(default_factory=list)
    retimed_words: List[Word] = field(default_factory=list)
    captions: List[CaptionCue] = field(default_factory=list)
    total_duration: float = 0.0
    refinement: Optional[Refinement] = None
    hook: Optional[str] = None

    @property
    def output_duration(self) -> float:
        return timeline_duration(self.mappings)

    @property
    def is_empty(self) -> bool:
        return not self.keep_ranges and not self.captions


def build_clip_plan(
    source_words: Sequence[Word],
    edited_words: Sequence[Word],
    total_duration: float,
    min_range_duration: float = MIN_CLIP_DURATION_SECONDS,
    caption_preset: str = DEFAULT_CAPTION_PRESET,
) -> ClipPlan:
    """Build ranges, mappings and captions for already-timed edit words.

    Args:
        source_words: Full time-ordered source transcript.
        edited_words: Edit words carrying source timestamps.
        total_duration: Source media duration in seconds.
        min_range_duration: Keep ranges shorter than this are dropped.
        caption_preset: caption_cues preset name.

    Returns:
        ClipPlan; empty when edited_words is empty.
    """
    if not edited_words:
        logger.warning("No words to keep; no clips generated")
        return ClipPlan(total_duration=total_duration)

    ranges = build_keep_ranges(source_words, edited_words, total_duration, min_range_duration)
    ranges = split_ranges_by_speaker(ranges, source_words)
    mappings = build_range_mappings(ranges)

    if mappings:
        retimed = map_words_to_timeline(edited_words, mappings)
    else:
        logger.info("No keep ranges survived; retiming edit words sequentially")
        retimed = retime_words_sequentially(edited_words)

    captions = segment_captions(words_to_caption_words(retimed), caption_preset)

    logger.info(
        "Clip plan: %d range(s), %.2fs of %.2fs kept, %d caption cue(s)",
        len(ranges), timeline_duration(mappings), total_duration, len(captions),
    )
    return ClipPlan(
        words=list(edited_words),
        keep_ranges=ranges,
        range_speakers=[resolve_speaker_for_range(r, source_words) for r in ranges],
        mappings=mappings,
        retimed_words=retimed,
        captions=captions,
        total_duration=total_duration,
    )


def refine_clip(
    source_words: Sequence[Word],
    edit: Union[str, Dict[str, Any]],
    total_duration: float,
    min_range_duration: float = MIN_CLIP_DURATION_SECONDS,
    caption_preset: str = DEFAULT_CAPTION_PRESET,
) -> ClipPlan:
    """Plan a clip from a freeform edit text or an edit service payload.

    RULES:
    - str edit: aligned to the source, then extended to the sentence start
    - dict edit: normalised with normalize_refinement(); its trimmed_words
      are used and the Refinement is attached to the plan
    - plan.hook is the payload hook when there is one, else built from the
      opening kept words
    """
    refinement = None
    if isinstance(edit, dict):
        refinement = normalize_refinement(edit, source_words)
        words = refinement.trimmed_words
    else:
        result = align_text_to_words(source_words, edit)
        words = extend_to_sentence_start(source_words, result.words, edit)

    plan = build_clip_plan(
        source_words,
        words,
        total_duration,
        min_range_duration=min_range_duration,
        caption_preset=caption_preset,
    )
    plan.refinement = refinement
    if plan.words:
        plan.hook = refinement.hook if refinement is not None else None
        if plan.hook is None:
            plan.hook = build_hook_text_from_words(plan.words)
    return plan
