"""Speaker-to-face assignment state machine.

WHY: When a clip shows several faces, the engine cannot know which face
belongs to which diarized speaker. A person resolves that by picking a face
slot for each speaker in turn. The flow has to be deterministic and
testable without any UI, and it must refuse invalid picks: committing a bad
assignment would frame the wrong person for the rest of the clip.

HOW: Three immutable state values and two transition functions.
  Idle                  - nothing started
  AwaitingConfirmation  - queue of speakers still to place, face slots still
                          free, the speaker being asked about, and the
                          assignment so far
  Resolved              - the finished assignment (speaker id -> slot index)
begin() and select_face() each return (new_state, assignment).
AssignmentSession wraps the current state for callers that need a single
mutable handle (the HTTP API). AssignmentCache keeps resolved assignments
per (source, transcript) so the flow is not repeated for the same video.

RULES:
- Face slots are the indices of the primary speaker's face candidates
  (the speaker with the most detected faces)
- begin() resolves immediately when there is at most one speaker or at
  most one slot; one slot with several speakers maps every speaker to it
- After a pick, if exactly one speaker and one slot remain they are paired
  without asking
- Otherwise the flow resolves once the queue or the free slots run out;
  speakers never asked remain unassigned and callers supply a fallback
- select_face outside AwaitingConfirmation, or with a slot that is not
  free, raises AssignmentError and leaves the state untouched
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence, Tuple, Union

from clip_refiner.core.ir import FaceCandidate, SpeakerSnippet
from clip_refiner.speakers.snippets import resolve_primary_speaker

logger = logging.getLogger(__name__)

Assignment = Dict[str, int]


class AssignmentError(RuntimeError):
    """Raised when the assignment flow is driven with an invalid transition."""


@dataclass(frozen=True)
class Idle:
    """No assignment flow is running."""

    name = "idle"


@dataclass(frozen=True)
class AwaitingConfirmation:
    """Waiting for a face slot to be picked for active_speaker."""

    queue: Tuple[str, ...]
    available_slots: Tuple[int, ...]
    active_speaker: str
    assignment: Tuple[Tuple[str, int], ...] = ()

    name = "awaiting_confirmation"

    def assignment_dict(self) -> Assignment:
        return dict(self.assignment)


@dataclass(frozen=True)
class Resolved:
    """The flow finished; assignment is final."""

    assignment: Tuple[Tuple[str, int], ...] = ()

    name = "resolved"

    def assignment_dict(self) -> Assignment:
        return dict(self.assignment)


AssignmentState = Union[Idle, AwaitingConfirmation, Resolved]


def _freeze(assignment: Assignment) -> Tuple[Tuple[str, int], ...]:
    return tuple(assignment.items())


def begin(
    snippets: Sequence[SpeakerSnippet],
    faces_by_speaker: Dict[str, Sequence[FaceCandidate]],
) -> Tuple[AssignmentState, Assignment]:
    """Start the assignment flow for a set of speakers.

    Args:
        snippets: One snippet per speaker; their ids form the queue.
        faces_by_speaker: Face candidates detected in each speaker's
            snippet, indexed by slot.

    Returns:
        (state, assignment). state is Resolved when no interaction is
        needed, otherwise AwaitingConfirmation for the first speaker.
    """
    primary, max_faces = resolve_primary_speaker(faces_by_speaker)
    slots = tuple(range(max_faces)) if primary is not None else ()
    queue = tuple(snippet.id for snippet in snippets)

    logger.info(
        "Assignment begin: %d speaker(s), primary=%s with %d face slot(s)",
        len(queue), primary, len(slots),
    )

    if len(queue) <= 1 or len(slots) <= 1:
        assignment: Assignment = {}
        if len(slots) == 1:
            assignment = {speaker_id: slots[0] for speaker_id in queue}
        return Resolved(assignment=_freeze(assignment)), assignment

    state = AwaitingConfirmation(
        queue=queue,
        available_slots=slots,
        active_speaker=queue[0],
    )
    return state, {}


def select_face(
    state: AssignmentState,
    slot_index: int,
) -> Tuple[AssignmentState, Assignment]:
    """Assign slot_index to the active speaker and advance the flow.

    Raises:
        AssignmentError: If state is not AwaitingConfirmation or slot_index
            is not one of its available slots.
    """
    if not isinstance(state, AwaitingConfirmation):
        raise AssignmentError(
            "select_face is only valid while awaiting confirmation (state: {})".format(state.name)
        )
    if slot_index not in state.available_slots:
        raise AssignmentError(
            "Face slot {} is not available (available: {})".format(
                slot_index, list(state.available_slots)
            )
        )

    assignment = state.assignment_dict()
    assignment[state.active_speaker] = slot_index
    remaining_slots = tuple(s for s in state.available_slots if s != slot_index)
    remaining_queue = tuple(s for s in state.queue if s != state.active_speaker)

    if len(remaining_queue) == 1 and len(remaining_slots) == 1:
        assignment[remaining_queue[0]] = remaining_slots[0]
        logger.info(
            "Auto-assigned last speaker %s to slot %d",
            remaining_queue[0], remaining_slots[0],
        )
        return Resolved(assignment=_freeze(assignment)), assignment

    if not remaining_queue or not remaining_slots:
        return Resolved(assignment=_freeze(assignment)), assignment

    next_state = AwaitingConfirmation(
        queue=remaining_queue,
        available_slots=remaining_slots,
        active_speaker=remaining_queue[0],
        assignment=_freeze(assignment),
    )
    return next_state, assignment


class AssignmentSession:
    """A single-writer handle on one assignment flow.

    WHY: Callers such as the HTTP API hold a flow across requests and need a
    stable object to drive; the transition functions themselves are pure.

    RULES:
    - Only one select() may run at a time; concurrent callers are
      serialised by an internal lock
    - A failed select() leaves the state unchanged
    """

    def __init__(self) -> None:
        self._state: AssignmentState = Idle()
        self._assignment: Assignment = {}
        self._lock = threading.Lock()

    @property
    def state(self) -> AssignmentState:
        return self._state

    @property
    def assignment(self) -> Assignment:
        return dict(self._assignment)

    @property
    def is_resolved(self) -> bool:
        return isinstance(self._state, Resolved)

    def begin(
        self,
        snippets: Sequence[SpeakerSnippet],
        faces_by_speaker: Dict[str, Sequence[FaceCandidate]],
    ) -> AssignmentState:
        """(Re)start the flow. Any earlier progress is discarded."""
        with self._lock:
            self._state, self._assignment = begin(snippets, faces_by_speaker)
            return self._state

    def select(self, slot_index: int) -> AssignmentState:
        with self._lock:
            self._state, self._assignment = select_face(self._state, slot_index)
            return self._state


class AssignmentCache:
    """Caller-owned cache of resolved assignments.

    Keyed by (source identity, transcript identity); any hashable values
    work, for example a media checksum and a transcript revision.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[Hashable, Hashable], Assignment] = {}

    def get(self, source_id: Hashable, transcript_id: Hashable) -> Optional[Assignment]:
        entry = self._entries.get((source_id, transcript_id))
        return dict(entry) if entry is not None else None

    def put(self, source_id: Hashable, transcript_id: Hashable, assignment: Assignment) -> None:
        self._entries[(source_id, transcript_id)] = dict(assignment)

    def invalidate(self, source_id: Hashable) -> int:
        """Drop every entry for a source; returns how many were dropped."""
        keys = [key for key in self._entries if key[0] == source_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def resolve_assigned_faces(
    assignment: Assignment,
    faces_by_speaker: Dict[str, Sequence[FaceCandidate]],
    speaker_ids: Optional[Sequence[str]] = None,
    fallback_slot: int = 0,
) -> Dict[str, FaceCandidate]:
    """Turn an assignment into a face candidate per speaker.

    HOW: Slots index the primary speaker's candidates. Speakers without an
    explicit slot use fallback_slot. If the slot is out of range, the
    speaker's own first candidate is used; speakers with neither are left
    out.

    Args:
        assignment: speaker id -> slot index.
        faces_by_speaker: Candidates detected per speaker snippet.
        speaker_ids: Speakers to resolve; defaults to the assignment keys.
        fallback_slot: Slot used for speakers missing from assignment.

    Returns:
        speaker id -> FaceCandidate.
    """
    primary, _ = resolve_primary_speaker(faces_by_speaker)
    primary_faces = list(faces_by_speaker.get(primary, [])) if primary is not None else []
    ids: List[str] = list(speaker_ids) if speaker_ids is not None else list(assignment)

    resolved: Dict[str, FaceCandidate] = {}
    for speaker_id in ids:
        slot = assignment.get(speaker_id, fallback_slot)
        if 0 <= slot < len(primary_faces):
            resolved[speaker_id] = primary_faces[slot]
            continue
        own = faces_by_speaker.get(speaker_id) or []
        if own:
            resolved[speaker_id] = own[0]
    return resolved
