"""Configuration constants, heuristic word lists, and .env loading.

WHY: The alignment engine is driven by a handful of thresholds (gap limits,
minimum clip length, match-ratio cut-offs) and by language-specific word
lists used to detect clips that start mid-sentence. Keeping them as plain
data, not buried in the algorithms, lets a deployment tune thresholds via
the environment and lets new locales be added without touching the code.

HOW: python-dotenv loads the .env file on import. Thresholds are module-level
constants, some overridable through environment variables. Heuristic word
lists are plain dicts keyed by language code in SENTENCE_HEURISTICS;
get_sentence_heuristics() resolves a language to a deep copy.

RULES:
- SENTENCE_HEURISTICS maps a language code to a dict with the keys
  "proper_start_exclusions", "mid_sentence_starters", "question_words",
  "pronoun_verbs" and "first_person_pronoun"
- Callers receive copies; the module-level dicts are never mutated
- All times are float seconds
"""

from __future__ import annotations

import copy
import os
from typing import Any, Dict

from dotenv import load_dotenv

# Load .env from the project root (where the process is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# Alignment and range thresholds
# ---------------------------------------------------------------------------

SENTENCE_END_PATTERN = r"[.!?][\"')\]]?$"
"""Terminal punctuation, optionally followed by a closing quote or bracket."""

# Sentence extension: how far back we may walk and how we locate the clip
EXTEND_MAX_GAP_SECONDS = 1.5
EXTEND_LOCATE_TOLERANCE_SECONDS = 0.5

# Sentence coverage filter applied to freeform edits
SENTENCE_GAP_SECONDS = 0.8
SENTENCE_MIN_COVERAGE = 0.6

# Speaker splitting / timeline retiming
SPLIT_MIN_DURATION_SECONDS = 0.01
TIMELINE_TOLERANCE_SECONDS = 0.05
MIN_WORD_DURATION_SECONDS = 0.05

# Speaker snippets
SPEAKER_SNIPPET_MIN_SECONDS = 3.0
SPEAKER_SEGMENT_GAP_SECONDS = 0.8
UNKNOWN_SPEAKER_ID = "unknown"

# Deploy-time overrides
MIN_CLIP_DURATION_SECONDS = float(os.getenv("MIN_CLIP_DURATION_SECONDS", "1.0"))
ALIGNMENT_MIN_MATCH_RATIO = float(os.getenv("ALIGNMENT_MIN_MATCH_RATIO", "0.65"))
DEFAULT_CAPTION_PRESET = os.getenv("DEFAULT_CAPTION_PRESET", "default")
DEFAULT_HEURISTICS_LANGUAGE = os.getenv("DEFAULT_HEURISTICS_LANGUAGE", "en")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ---------------------------------------------------------------------------
# Hook text
# ---------------------------------------------------------------------------

HOOK_MAX_WORDS = 18
HOOK_MIN_WORDS = 6
HOOK_MAX_CHARACTERS = 96
HOOK_DEFAULT_TEXT = "Here's the key moment - watch what happens."

# ---------------------------------------------------------------------------
# Mid-sentence heuristics
# ---------------------------------------------------------------------------

ENGLISH_HEURISTICS: Dict[str, Any] = {
    # A capitalised first word is a proper start unless it is one of these
    "proper_start_exclusions": {"and", "but", "or", "so"},
    "mid_sentence_starters": {
        # coordinating conjunctions
        "and", "but", "or", "so", "nor", "yet", "for",
        # subordinating conjunctions
        "because", "although", "though", "while", "whereas", "unless",
        "since", "until", "if", "when", "whenever", "where", "than",
        "then", "which", "that", "who", "whom", "whose",
        # discourse fillers
        "like", "um", "uh", "yeah", "also", "plus", "anyway", "actually",
        "basically", "literally", "just",
    },
    "question_words": {"why", "what", "how"},
    "pronoun_verbs": {
        "was", "am", "have", "had", "think", "thought", "feel", "felt",
        "want", "wanted", "need", "needed", "did", "do", "would", "could",
        "should", "will", "can", "mean", "meant", "said", "guess",
    },
    "first_person_pronoun": "i",
}

SENTENCE_HEURISTICS: Dict[str, Dict[str, Any]] = {
    "en": ENGLISH_HEURISTICS,
}


def get_sentence_heuristics(language: str = DEFAULT_HEURISTICS_LANGUAGE) -> Dict[str, Any]:
    """Return a copy of the mid-sentence heuristics for a language.

    RULES:
    - Raises ValueError for languages with no registered word lists
    - The returned dict is a deep copy and may be modified by the caller
    """
    if language not in SENTENCE_HEURISTICS:
        raise ValueError(
            "No sentence heuristics for language '{}'. Available: {}".format(
                language, ", ".join(sorted(SENTENCE_HEURISTICS))
            )
        )
    return copy.deepcopy(SENTENCE_HEURISTICS[language])
