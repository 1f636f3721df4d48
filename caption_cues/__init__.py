"""Caption cue library for short-form clip captions.

WHY: Edited clips need burned-in captions re-derived for the compressed
output timeline. This package turns timestamped words into legible cues
(bounded words, characters and seconds per cue) and renders them as SRT.
It is kept separate from the clip engine so it can be used on any word
list, including from the command line.

HOW: segment_captions(words, preset) resolves the preset name to a config
dict, deep-copies it and runs the two-level greedy split in core.
format_srt(words, preset) does the same and renders the cues as SRT.

RULES:
- segment_captions() and format_srt() are the public API.
- Preset names: "default", "compact".
- The words list must contain Word objects from caption_cues.models.
- Never mutate the preset constants; copies are made internally.
"""

import copy
from typing import Dict, List, Optional

from .models import CaptionCue, Word
from .presets import PRESETS, PRESET_COMPACT, PRESET_DEFAULT
from .core import chunk_words_into_cues, generate_srt, parse_input, try_parse_json

__all__ = [
    "segment_captions",
    "format_srt",
    "resolve_preset",
    "CaptionCue",
    "Word",
    "PRESETS",
    "PRESET_DEFAULT",
    "PRESET_COMPACT",
    "generate_srt",
    "parse_input",
    "try_parse_json",
]


def resolve_preset(preset: str = "default", config: Optional[Dict] = None) -> Dict:
    """Return a private copy of the named preset, or of config if given.

    Raises:
        ValueError: If preset name is not recognized and no config is provided.
    """
    if config is not None:
        return copy.deepcopy(config)
    if preset not in PRESETS:
        raise ValueError(
            "Unknown preset '{}'. Available: {}".format(preset, ", ".join(PRESETS.keys()))
        )
    return copy.deepcopy(PRESETS[preset])


def segment_captions(
    words: List[Word],
    preset: str = "default",
    config: Optional[Dict] = None,
) -> List[CaptionCue]:
    """Segment timestamped words into caption cues.

    Args:
        words: Time-ordered Word objects on the output timeline.
        preset: Preset name ("default", "compact"). Default: "default".
        config: Optional custom config dict. If provided, preset is ignored.

    Returns:
        Ordered, non-overlapping caption cues; empty for empty input.

    Raises:
        ValueError: If preset name is not recognized and no config is provided.
    """
    cfg = resolve_preset(preset, config)
    if not words:
        return []
    return chunk_words_into_cues(words, cfg)


def format_srt(
    words: List[Word],
    preset: str = "default",
    config: Optional[Dict] = None,
) -> str:
    """Segment words into cues and render them as an SRT string.

    Returns empty string if words list is empty.
    """
    cues = segment_captions(words, preset, config)
    if not cues:
        return ""
    return generate_srt(cues)
