"""Shared test fixtures for the clip_refiner test suite.

WHY: Most modules (aligner, ranges, refinement, pipeline, formatters, API)
need the same small time-coded transcripts. Centralizing them keeps the
expected timestamps in one place so assertions across modules agree.

HOW: Two transcripts:
  - cat_sat_words: "The cat sat down." - one speaker, four words, the
    minimal case for alignment and range building
  - interview_words: a two-speaker exchange, four sentences, used for
    sentence coverage, speaker splitting and snippet extraction

RULES:
- Timestamps are exact decimal literals (no arithmetic) so tests can
  compare them directly
- Fixtures return fresh lists; tests may mutate them freely
"""

from typing import List, Optional, Tuple

import pytest

from clip_refiner.core.ir import FaceCandidate, SpeakerSnippet, Word


CAT_SAT: List[Tuple[str, float, float]] = [
    ("The", 0.0, 0.3),
    ("cat", 0.3, 0.6),
    ("sat", 0.6, 0.9),
    ("down.", 0.9, 1.2),
]

# Index:  0-4 "Welcome back to the show."   (A)
#         5-9 "Today we talk about money."  (A)
#       10-13 "Thanks for having me."       (B)
#       14-18 "I think savings matter most." (B)
INTERVIEW: List[Tuple[str, float, float, str]] = [
    ("Welcome", 0.0, 0.4, "A"),
    ("back", 0.4, 0.7, "A"),
    ("to", 0.7, 0.8, "A"),
    ("the", 0.8, 0.9, "A"),
    ("show.", 0.9, 1.3, "A"),
    ("Today", 1.5, 1.9, "A"),
    ("we", 1.9, 2.0, "A"),
    ("talk", 2.0, 2.3, "A"),
    ("about", 2.3, 2.6, "A"),
    ("money.", 2.6, 3.0, "A"),
    ("Thanks", 3.5, 3.8, "B"),
    ("for", 3.8, 3.9, "B"),
    ("having", 3.9, 4.2, "B"),
    ("me.", 4.2, 4.5, "B"),
    ("I", 4.7, 4.8, "B"),
    ("think", 4.8, 5.1, "B"),
    ("savings", 5.1, 5.6, "B"),
    ("matter", 5.6, 5.9, "B"),
    ("most.", 5.9, 6.4, "B"),
]


def _word(text: str, start: float, end: float, speaker: Optional[str] = None) -> Word:
    return Word(text=text, start=start, end=end, speaker_id=speaker)


@pytest.fixture
def cat_sat_words() -> List[Word]:
    """'The cat sat down.' spoken by speaker A, 0.3s per word."""
    return [_word(text, start, end, "A") for text, start, end in CAT_SAT]


@pytest.fixture
def interview_words() -> List[Word]:
    """Two-speaker interview: A speaks 0.0-3.0s, B speaks 3.5-6.4s."""
    return [_word(*entry) for entry in INTERVIEW]


@pytest.fixture
def three_speaker_snippets() -> List[SpeakerSnippet]:
    return [
        SpeakerSnippet(id="A", label="Speaker 1", start=0.0, end=3.0),
        SpeakerSnippet(id="B", label="Speaker 2", start=3.0, end=6.0),
        SpeakerSnippet(id="C", label="Speaker 3", start=6.0, end=9.0),
    ]


@pytest.fixture
def three_face_slots():
    """Speaker A's snippet shows three faces, B two, C one; A is primary."""
    faces = [
        FaceCandidate(x=0.1, y=0.2, width=0.1, height=0.2),
        FaceCandidate(x=0.4, y=0.2, width=0.1, height=0.2),
        FaceCandidate(x=0.7, y=0.2, width=0.1, height=0.2),
    ]
    return {
        "A": faces,
        "B": faces[:2],
        "C": faces[:1],
    }
