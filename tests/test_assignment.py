"""Tests for the speaker-to-face assignment state machine.

WHY: A wrong assignment frames the wrong person for the rest of a clip.
The flow must ask exactly the questions it needs, pair the last speaker
automatically, and refuse invalid picks without changing state.

HOW: Pure transition tests on begin()/select_face(), then the mutable
AssignmentSession handle, the AssignmentCache and resolve_assigned_faces().
"""

import pytest

from clip_refiner.core.ir import FaceCandidate, SpeakerSnippet
from clip_refiner.speakers.assignment import (
    AssignmentCache,
    AssignmentError,
    AssignmentSession,
    AwaitingConfirmation,
    Idle,
    Resolved,
    begin,
    resolve_assigned_faces,
    select_face,
)


def _snippets(*ids):
    return [
        SpeakerSnippet(id=sid, label="Speaker {}".format(i + 1), start=i * 3.0, end=i * 3.0 + 3.0)
        for i, sid in enumerate(ids)
    ]


def _faces(count):
    return [FaceCandidate(x=i * 0.3, y=0.1, width=0.2, height=0.3) for i in range(count)]


class TestBegin:

    def test_three_speakers_three_slots_awaits_first(self, three_speaker_snippets, three_face_slots):
        state, assignment = begin(three_speaker_snippets, three_face_slots)

        assert isinstance(state, AwaitingConfirmation)
        assert state.queue == ("A", "B", "C")
        assert state.available_slots == (0, 1, 2)
        assert state.active_speaker == "A"
        assert assignment == {}

    def test_single_speaker_resolves_immediately(self):
        state, assignment = begin(_snippets("A"), {"A": _faces(3)})
        assert isinstance(state, Resolved)
        assert assignment == {}

    def test_single_slot_maps_every_speaker(self):
        state, assignment = begin(_snippets("A", "B"), {"A": _faces(1), "B": _faces(1)})
        assert isinstance(state, Resolved)
        assert assignment == {"A": 0, "B": 0}

    def test_no_faces_resolves_empty(self):
        state, assignment = begin(_snippets("A", "B"), {})
        assert isinstance(state, Resolved)
        assert assignment == {}

    def test_slots_come_from_primary_speaker(self):
        state, _ = begin(_snippets("A", "B"), {"A": _faces(1), "B": _faces(4)})
        assert state.available_slots == (0, 1, 2, 3)


class TestSelectFace:

    def test_last_speaker_is_paired_automatically(self, three_speaker_snippets, three_face_slots):
        state, _ = begin(three_speaker_snippets, three_face_slots)

        state, assignment = select_face(state, 1)
        assert isinstance(state, AwaitingConfirmation)
        assert state.active_speaker == "B"
        assert state.queue == ("B", "C")
        assert state.available_slots == (0, 2)
        assert assignment == {"A": 1}

        state, assignment = select_face(state, 2)
        assert isinstance(state, Resolved)
        assert assignment == {"A": 1, "B": 2, "C": 0}
        assert state.assignment_dict() == assignment

    def test_two_speakers_three_slots_asks_both(self):
        state, _ = begin(_snippets("A", "B"), {"A": _faces(3)})
        state, _ = select_face(state, 0)
        assert isinstance(state, AwaitingConfirmation)
        assert state.available_slots == (1, 2)

        state, assignment = select_face(state, 2)
        assert isinstance(state, Resolved)
        assert assignment == {"A": 0, "B": 2}

    def test_more_speakers_than_slots_leaves_rest_unassigned(self):
        state, _ = begin(_snippets("A", "B", "C"), {"A": _faces(2)})
        state, _ = select_face(state, 0)
        state, assignment = select_face(state, 1)

        assert isinstance(state, Resolved)
        assert assignment == {"A": 0, "B": 1}

    def test_unavailable_slot_raises(self, three_speaker_snippets, three_face_slots):
        state, _ = begin(three_speaker_snippets, three_face_slots)
        state, _ = select_face(state, 1)

        with pytest.raises(AssignmentError, match="not available"):
            select_face(state, 1)
        with pytest.raises(AssignmentError):
            select_face(state, 7)

    def test_select_outside_confirmation_raises(self):
        with pytest.raises(AssignmentError, match="idle"):
            select_face(Idle(), 0)
        with pytest.raises(AssignmentError, match="resolved"):
            select_face(Resolved(), 0)

    def test_states_are_immutable(self, three_speaker_snippets, three_face_slots):
        state, _ = begin(three_speaker_snippets, three_face_slots)
        select_face(state, 0)
        assert state.available_slots == (0, 1, 2)
        assert state.assignment == ()


class TestAssignmentSession:

    def test_starts_idle(self):
        session = AssignmentSession()
        assert isinstance(session.state, Idle)
        assert not session.is_resolved

    def test_full_flow(self, three_speaker_snippets, three_face_slots):
        session = AssignmentSession()
        session.begin(three_speaker_snippets, three_face_slots)
        session.select(2)
        session.select(0)

        assert session.is_resolved
        assert session.assignment == {"A": 2, "B": 0, "C": 1}

    def test_failed_select_keeps_state(self, three_speaker_snippets, three_face_slots):
        session = AssignmentSession()
        session.begin(three_speaker_snippets, three_face_slots)
        session.select(1)
        before = session.state

        with pytest.raises(AssignmentError):
            session.select(1)
        assert session.state == before
        assert session.assignment == {"A": 1}

    def test_begin_restarts(self, three_speaker_snippets, three_face_slots):
        session = AssignmentSession()
        session.begin(three_speaker_snippets, three_face_slots)
        session.select(1)
        session.begin(three_speaker_snippets, three_face_slots)
        assert session.state.active_speaker == "A"
        assert session.assignment == {}


class TestAssignmentCache:

    def test_put_and_get(self):
        cache = AssignmentCache()
        cache.put("video-1", "rev-1", {"A": 0})
        assert cache.get("video-1", "rev-1") == {"A": 0}
        assert cache.get("video-1", "rev-2") is None

    def test_get_returns_copy(self):
        cache = AssignmentCache()
        cache.put("video-1", "rev-1", {"A": 0})
        cache.get("video-1", "rev-1")["A"] = 5
        assert cache.get("video-1", "rev-1") == {"A": 0}

    def test_invalidate_source(self):
        cache = AssignmentCache()
        cache.put("video-1", "rev-1", {"A": 0})
        cache.put("video-1", "rev-2", {"A": 1})
        cache.put("video-2", "rev-1", {"A": 2})

        assert cache.invalidate("video-1") == 2
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0


class TestResolveAssignedFaces:

    def test_slots_index_primary_faces(self, three_face_slots):
        faces = resolve_assigned_faces({"A": 2, "B": 0}, three_face_slots)
        assert faces["A"] == three_face_slots["A"][2]
        assert faces["B"] == three_face_slots["A"][0]

    def test_unassigned_speakers_use_fallback_slot(self, three_face_slots):
        faces = resolve_assigned_faces({}, three_face_slots, speaker_ids=["A", "B"], fallback_slot=1)
        assert faces == {"A": three_face_slots["A"][1], "B": three_face_slots["A"][1]}

    def test_out_of_range_slot_uses_own_face(self):
        own = _faces(1)
        faces_by_speaker = {"A": _faces(2), "B": own}
        faces = resolve_assigned_faces({"B": 9}, faces_by_speaker)
        assert faces == {"B": own[0]}

    def test_no_faces_at_all(self):
        assert resolve_assigned_faces({"A": 0}, {}) == {}
