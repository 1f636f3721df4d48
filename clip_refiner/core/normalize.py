"""Token normalisation for syntactic word matching.

WHY: The edit service may change casing and punctuation ("Cat," vs "cat")
while keeping the words themselves. Alignment compares canonical tokens so
those cosmetic differences never break a match.

HOW: Lowercase, then strip every character outside [a-z0-9'].

RULES:
- normalize_token is total: any input (including None) yields a string
- An empty result is valid; callers skip empty tokens
- Apostrophes survive so "don't" and "dont" stay distinct
"""

import re
from typing import List, Optional

_NON_TOKEN_RE = re.compile(r"[^a-z0-9']+")


def normalize_token(text: Optional[str]) -> str:
    """Return the canonical comparison form of a word."""
    if not text:
        return ""
    return _NON_TOKEN_RE.sub("", str(text).lower())


def tokenize_text(text: Optional[str]) -> List[str]:
    """Split freeform text on whitespace into normalised, non-empty tokens."""
    if not text:
        return []
    tokens = (normalize_token(part) for part in str(text).split())
    return [token for token in tokens if token]
