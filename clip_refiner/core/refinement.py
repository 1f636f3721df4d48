"""Normalisation of generative edit payloads into a Refinement.

WHY: The edit service is asked for a JSON object, but what comes back
varies: a freeform "trimmed_text", inclusive word-index "keep_ranges",
structured "trimmed_words" whose timestamps cannot be trusted, several
concept variants with loosely named fields, hooks with stray whitespace.
Everything downstream (keep ranges, captions, snippets) needs one clean
shape whose words carry real source timestamps.

HOW: resolve_trimmed_words() picks the best word source for one entry, in
order:
  1. trimmed_text aligned with match ratio >= ALIGNMENT_MIN_MATCH_RATIO,
     rounded to whole sentences, extended back to the sentence start
  2. keep_ranges expanded from the source
  3. the low-quality trimmed_text alignment, rounded to sentences
  4. trimmed_words re-anchored onto the source
normalize_refinement() applies that to the top-level payload and to each
concept, gives concepts unique slug ids, and falls back to the default (or
first) concept for anything missing at the top level.

RULES:
- Returned words always come from the source transcript when one is given
- Concepts without any words are dropped
- default_concept_id is None or the id of a kept concept
- Hooks are whitespace-normalised and cut to HOOK_MAX_CHARACTERS with "..."
- A refinement with words always has a hook: the payload's, the fallback
  concept's, or one built from the opening kept words
- estimated_duration_seconds: the payload's number if finite, else the sum
  of kept word durations rounded to 0.1s, else None
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Sequence, Set

from clip_refiner.config import (
    ALIGNMENT_MIN_MATCH_RATIO,
    HOOK_DEFAULT_TEXT,
    HOOK_MAX_CHARACTERS,
    HOOK_MAX_WORDS,
    HOOK_MIN_WORDS,
    SENTENCE_END_PATTERN,
)
from clip_refiner.core.aligner import (
    align_text_to_words,
    filter_indices_by_sentence_coverage,
    map_words_to_source,
    words_from_index_ranges,
    words_from_indices,
)
from clip_refiner.core.ir import ConceptChoice, Refinement, Word, words_from_dicts
from clip_refiner.core.sentence import extend_to_sentence_start

logger = logging.getLogger(__name__)

_SENTENCE_END_RE = re.compile(SENTENCE_END_PATTERN)
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,.!?])")
_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


# ---------------------------------------------------------------------------
# Hook text
# ---------------------------------------------------------------------------


def normalize_hook_text(text: str) -> str:
    """Collapse whitespace and drop spaces before punctuation."""
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _truncate_hook(text: str) -> str:
    if len(text) <= HOOK_MAX_CHARACTERS:
        return text
    return text[:HOOK_MAX_CHARACTERS - 3].strip() + "..."


def coerce_hook_text(value: Any) -> Optional[str]:
    """Clean a hook from the edit service; None when absent or blank."""
    if not isinstance(value, str):
        return None
    cleaned = normalize_hook_text(value)
    if not cleaned:
        return None
    return _truncate_hook(cleaned)


def build_hook_text_from_words(words: Sequence[Word]) -> str:
    """Derive a hook line from the opening words of a clip.

    Takes words until a sentence ends after at least HOOK_MIN_WORDS words,
    or HOOK_MAX_WORDS words are taken. Falls back to HOOK_DEFAULT_TEXT.
    """
    selected: List[str] = []
    for word in words:
        token = word.text.strip()
        if not token:
            continue
        selected.append(token)
        if len(selected) >= HOOK_MIN_WORDS and _SENTENCE_END_RE.search(token):
            break
        if len(selected) >= HOOK_MAX_WORDS:
            break
    sentence = normalize_hook_text(" ".join(selected))
    if not sentence:
        return HOOK_DEFAULT_TEXT
    return _truncate_hook(sentence)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _text_value(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _first_text(entry: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = _text_value(entry.get(key))
        if value:
            return value
    return None


def slugify(value: str) -> str:
    return _SLUG_RE.sub("-", value.lower()).strip("-")


def _unique_concept_id(raw_id: Optional[str], title: str, index: int, seen: Set[str]) -> str:
    fallback = "concept-{}".format(index + 1)
    base = slugify(raw_id or title or fallback) or fallback
    candidate = base
    attempt = 1
    while candidate in seen:
        candidate = "{}-{}".format(base, attempt)
        attempt += 1
    seen.add(candidate)
    return candidate


def compute_estimated_duration(words: Sequence[Word]) -> Optional[float]:
    """Sum of word durations rounded to 0.1s; None when nothing is spoken."""
    total = sum(max(0.0, w.end - w.start) for w in words)
    if total <= 0:
        return None
    return round(total * 10) / 10


# ---------------------------------------------------------------------------
# Word resolution
# ---------------------------------------------------------------------------


def resolve_trimmed_words(
    entry: Dict[str, Any],
    source_words: Sequence[Word],
    min_match_ratio: float = ALIGNMENT_MIN_MATCH_RATIO,
) -> List[Word]:
    """Pick the best timed word list for one edit entry.

    See the module docstring for the order of preference. Without source
    words only structured trimmed_words can be used, as given.
    """
    structured = words_from_dicts(entry.get("trimmed_words"))
    if not source_words:
        return structured

    trimmed_text = _text_value(entry.get("trimmed_text"))
    attempt = None
    if trimmed_text:
        attempt = align_text_to_words(source_words, trimmed_text)
        if attempt.words and attempt.match_ratio >= min_match_ratio:
            indices = filter_indices_by_sentence_coverage(source_words, attempt.indices)
            words = words_from_indices(source_words, indices)
            return extend_to_sentence_start(source_words, words, trimmed_text)
        if attempt.words:
            logger.warning(
                "Trimmed text alignment was low quality (match ratio %.2f)",
                attempt.match_ratio,
            )

    keep_ranges = entry.get("keep_ranges")
    if isinstance(keep_ranges, list):
        words = words_from_index_ranges(source_words, keep_ranges)
        if words:
            return words

    if attempt is not None and attempt.indices:
        indices = filter_indices_by_sentence_coverage(source_words, attempt.indices)
        return words_from_indices(source_words, indices)

    if structured:
        return map_words_to_source(source_words, structured)
    return []


def _normalize_concept(
    entry: Any,
    index: int,
    seen: Set[str],
    source_words: Sequence[Word],
) -> Optional[ConceptChoice]:
    if not isinstance(entry, dict):
        return None
    words = resolve_trimmed_words(entry, source_words)
    if not words:
        logger.info("Dropping concept %d: no words could be resolved", index + 1)
        return None

    title = _first_text(entry, "title", "name", "label", "concept_title") or "Concept {}".format(index + 1)
    estimated = _optional_number(entry.get("estimated_duration_seconds"))
    return ConceptChoice(
        id=_unique_concept_id(_first_text(entry, "id", "name", "label"), title, index, seen),
        title=title,
        trimmed_words=words,
        description=_first_text(entry, "description", "summary", "concept_summary"),
        hook=coerce_hook_text(entry.get("hook")),
        notes=_text_value(entry.get("notes")),
        estimated_duration_seconds=estimated if estimated is not None else compute_estimated_duration(words),
    )


def normalize_refinement(
    payload: Optional[Dict[str, Any]],
    source_words: Sequence[Word] = (),
) -> Refinement:
    """Normalise an edit service response into a Refinement.

    Args:
        payload: Parsed JSON object from the edit service.
        source_words: The source transcript the edit was made from.

    Returns:
        Refinement whose trimmed_words come from the top-level entry, or
        from the default concept when the top level has none.
    """
    if not isinstance(payload, dict):
        return Refinement()

    top_words = resolve_trimmed_words(payload, source_words)

    seen: Set[str] = set()
    concepts: List[ConceptChoice] = []
    for index, entry in enumerate(payload.get("concepts") or []):
        concept = _normalize_concept(entry, index, seen, source_words)
        if concept is not None:
            concepts.append(concept)

    default_id = _text_value(payload.get("default_concept_id"))
    fallback = next((c for c in concepts if c.id == default_id), None)
    if fallback is None and concepts:
        fallback = concepts[0]

    words = top_words if top_words else (fallback.trimmed_words if fallback else [])

    estimated = _optional_number(payload.get("estimated_duration_seconds"))
    if estimated is None and fallback is not None:
        estimated = fallback.estimated_duration_seconds
    if estimated is None:
        estimated = compute_estimated_duration(words)

    hook = coerce_hook_text(payload.get("hook"))
    if hook is None and fallback is not None:
        hook = fallback.hook
    if hook is None and words:
        hook = build_hook_text_from_words(words)

    notes = _text_value(payload.get("notes"))
    if notes is None and fallback is not None:
        notes = fallback.notes

    return Refinement(
        trimmed_words=list(words),
        hook=hook,
        notes=notes,
        estimated_duration_seconds=estimated,
        concepts=concepts,
        default_concept_id=fallback.id if fallback else None,
    )
