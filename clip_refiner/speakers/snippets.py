"""Speaker snippet extraction and primary-speaker resolution.

WHY: Before per-speaker framing can be applied, a person has to confirm
which detected face belongs to which diarized speaker. They do that by
listening to a short, representative window of each speaker. This module
picks those windows, and identifies the speaker whose snippet showed the
most faces (the one whose face slots are offered as choices).

HOW: Words are grouped by speaker in order of first appearance. Each
speaker's words are merged into contiguous segments, splitting wherever
the pause after the previous word exceeds SPEAKER_SEGMENT_GAP_SECONDS. The
first segment of at least SPEAKER_SNIPPET_MIN_SECONDS is chosen, else the
longest one; its end is pushed out to the minimum length and clamped to
the media duration.

RULES:
- One snippet per distinct speaker id, ordered by first appearance
- Labels are "Speaker 1", "Speaker 2", ... in that order
- A None speaker id is grouped as "unknown"
- end - start >= SPEAKER_SNIPPET_MIN_SECONDS unless the media is shorter
"""

from typing import Dict, List, Optional, Sequence, Tuple

from clip_refiner.config import (
    SPEAKER_SEGMENT_GAP_SECONDS,
    SPEAKER_SNIPPET_MIN_SECONDS,
    UNKNOWN_SPEAKER_ID,
)
from clip_refiner.core.ir import FaceCandidate, SpeakerSnippet, TimeRange, Word


def _group_by_speaker(words: Sequence[Word]) -> Dict[str, List[Word]]:
    groups: Dict[str, List[Word]] = {}
    for word in words:
        key = word.speaker_id if word.speaker_id is not None else UNKNOWN_SPEAKER_ID
        groups.setdefault(key, []).append(word)
    return groups


def _speaking_segments(words: Sequence[Word], max_gap: float) -> List[TimeRange]:
    ordered = sorted(words, key=lambda w: w.start)
    segments: List[TimeRange] = []
    current = TimeRange(start=ordered[0].start, end=ordered[0].end)
    for word in ordered[1:]:
        if word.start - current.end > max_gap:
            segments.append(current)
            current = TimeRange(start=word.start, end=word.end)
        else:
            current.end = max(current.end, word.end)
    segments.append(current)
    return segments


def build_speaker_snippets(
    words: Sequence[Word],
    total_duration: Optional[float] = None,
    min_seconds: float = SPEAKER_SNIPPET_MIN_SECONDS,
    max_gap: float = SPEAKER_SEGMENT_GAP_SECONDS,
) -> List[SpeakerSnippet]:
    """Pick one representative speaking window per speaker.

    Args:
        words: Speaker-labelled source words.
        total_duration: Media duration; snippet ends are clamped to it when
            it is positive.
        min_seconds: Minimum snippet length.
        max_gap: Largest pause kept inside one speaking segment.

    Returns:
        Snippets in order of each speaker's first appearance.
    """
    if not words:
        return []

    snippets: List[SpeakerSnippet] = []
    # dicts keep insertion order, so this is first-appearance order
    for index, (speaker_id, speaker_words) in enumerate(_group_by_speaker(words).items()):
        segments = _speaking_segments(speaker_words, max_gap)
        candidate = next((s for s in segments if s.duration >= min_seconds), None)
        if candidate is None:
            candidate = segments[0]
            for segment in segments[1:]:
                if segment.duration > candidate.duration:
                    candidate = segment

        end = max(candidate.end, candidate.start + min_seconds)
        if total_duration is not None and total_duration > 0:
            end = min(end, total_duration)

        snippets.append(SpeakerSnippet(
            id=speaker_id,
            label="Speaker {}".format(index + 1),
            start=candidate.start,
            end=end,
        ))
    return snippets


def count_speakers(words: Sequence[Word]) -> int:
    """Number of distinct speakers, counting missing ids as one "unknown"."""
    return len(_group_by_speaker(words))


def resolve_primary_speaker(
    faces_by_speaker: Dict[str, Sequence[FaceCandidate]],
) -> Tuple[Optional[str], int]:
    """Return (speaker id with the most detected faces, that face count).

    Ties keep the speaker listed first. No faces at all -> (None, 0).
    """
    primary: Optional[str] = None
    max_faces = 0
    for speaker_id, faces in faces_by_speaker.items():
        if len(faces) > max_faces:
            max_faces = len(faces)
            primary = speaker_id
    return primary, max_faces
