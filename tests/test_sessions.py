"""Unit tests for the in-memory assignment session store.

RULES:
- Each test creates its own AssignmentSessionStore instance
- Time-dependent tests use monkeypatch to control time.time()
"""

from __future__ import annotations

import threading

import pytest

from clip_refiner.server import sessions
from clip_refiner.server.sessions import DEFAULT_TTL_SECONDS, AssignmentSessionStore
from clip_refiner.speakers.assignment import AssignmentError, AwaitingConfirmation, Resolved


class TestCreateAndGet:

    def test_create_begins_the_flow(self, three_speaker_snippets, three_face_slots):
        store = AssignmentSessionStore()
        record = store.create(three_speaker_snippets, three_face_slots)

        assert len(record.id) == 32
        assert isinstance(record.session.state, AwaitingConfirmation)
        assert store.get(record.id) is record
        assert len(store) == 1

    def test_unknown_id(self):
        assert AssignmentSessionStore().get("missing") is None

    def test_max_sessions(self, three_speaker_snippets, three_face_slots):
        store = AssignmentSessionStore(max_sessions=1)
        store.create(three_speaker_snippets, three_face_slots)
        with pytest.raises(ValueError, match="Maximum number"):
            store.create(three_speaker_snippets, three_face_slots)

    def test_default_ttl_is_one_hour(self):
        assert DEFAULT_TTL_SECONDS == 3600


class TestSelect:

    def test_select_advances_and_touches(self, three_speaker_snippets, three_face_slots, monkeypatch):
        store = AssignmentSessionStore()
        monkeypatch.setattr(sessions.time, "time", lambda: 1000.0)
        record = store.create(three_speaker_snippets, three_face_slots)

        monkeypatch.setattr(sessions.time, "time", lambda: 1500.0)
        store.select(record.id, 0)
        state = store.select(record.id, 1)

        assert isinstance(state, Resolved)
        assert record.updated_at == 1500.0
        assert record.created_at == 1000.0

    def test_select_unknown_returns_none(self):
        assert AssignmentSessionStore().select("missing", 0) is None

    def test_invalid_select_propagates(self, three_speaker_snippets, three_face_slots):
        store = AssignmentSessionStore()
        record = store.create(three_speaker_snippets, three_face_slots)
        with pytest.raises(AssignmentError):
            store.select(record.id, 9)


class TestDeleteAndCleanup:

    def test_delete(self, three_speaker_snippets, three_face_slots):
        store = AssignmentSessionStore()
        record = store.create(three_speaker_snippets, three_face_slots)
        assert store.delete(record.id) is True
        assert store.delete(record.id) is False
        assert store.get(record.id) is None

    def test_idle_sessions_expire(self, three_speaker_snippets, three_face_slots, monkeypatch):
        store = AssignmentSessionStore(ttl_seconds=60)
        monkeypatch.setattr(sessions.time, "time", lambda: 1000.0)
        old = store.create(three_speaker_snippets, three_face_slots)
        monkeypatch.setattr(sessions.time, "time", lambda: 1050.0)
        fresh = store.create(three_speaker_snippets, three_face_slots)

        monkeypatch.setattr(sessions.time, "time", lambda: 1070.0)
        assert store.cleanup_expired() == 1
        assert store.get(old.id) is None
        assert store.get(fresh.id) is fresh

    def test_selection_keeps_session_alive(self, three_speaker_snippets, three_face_slots, monkeypatch):
        store = AssignmentSessionStore(ttl_seconds=60)
        monkeypatch.setattr(sessions.time, "time", lambda: 1000.0)
        record = store.create(three_speaker_snippets, three_face_slots)
        monkeypatch.setattr(sessions.time, "time", lambda: 1050.0)
        store.select(record.id, 0)

        monkeypatch.setattr(sessions.time, "time", lambda: 1100.0)
        assert store.cleanup_expired() == 0


class TestThreadSafety:

    def test_concurrent_creates(self, three_speaker_snippets, three_face_slots):
        store = AssignmentSessionStore(max_sessions=500)

        def worker():
            for _ in range(20):
                store.create(three_speaker_snippets, three_face_slots)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store) == 100
