"""Legibility presets for caption cue segmentation.

WHY: Different render targets need different cue limits. The default values
suit burned-in captions on short clips; narrow vertical layouts want fewer
words per cue. Keeping limits and break characters as plain data lets a
caller pick a preset by name or hand in a custom dict, and keeps concurrent
calls with different presets free of global state.

HOW: Each preset is a plain dict with hard limits (max_words, max_chars,
max_duration), break heuristics (sentence_gap, soft_break_gap,
soft_break_chars, sentence_end_pattern) and the cue duration floor. PRESETS
maps names to dicts.

RULES:
- Presets are frozen constants; never mutate them at runtime.
- Callers must copy a preset before modifying it (segment_captions does
  this internally).
- max_chars counts the words joined with single spaces.
"""

from typing import Dict

PRESET_DEFAULT: Dict = {
    "max_words": 8,
    "max_chars": 48,
    "max_duration": 3.2,
    "sentence_gap": 0.6,
    "soft_break_gap": 0.35,
    "soft_break_chars": ",;:",
    "sentence_end_pattern": r"[.!?][\"')\]]?$",
    "min_cue_duration": 0.1,
}

# Narrow vertical layouts: shorter cues that fit on one line
PRESET_COMPACT: Dict = {
    "max_words": 5,
    "max_chars": 28,
    "max_duration": 2.4,
    "sentence_gap": 0.6,
    "soft_break_gap": 0.3,
    "soft_break_chars": ",;:",
    "sentence_end_pattern": r"[.!?][\"')\]]?$",
    "min_cue_duration": 0.1,
}

PRESETS: Dict[str, Dict] = {
    "default": PRESET_DEFAULT,
    "compact": PRESET_COMPACT,
}
