"""In-memory store for speaker-to-face assignment sessions.

WHY: The assignment flow spans several HTTP requests (begin, then one
selection per speaker), so the API has to keep each flow's state between
requests. An in-memory store is sufficient: sessions are short-lived and
cheap to restart by calling begin again.

HOW: Two components work together:
  SessionRecord          - dataclass holding the AssignmentSession, the
                           faces it was started with, and timestamps
  AssignmentSessionStore - thread-safe dict-based store with
                           create/get/delete and TTL cleanup

RULES:
- All store mutations are protected by threading.Lock for thread safety
- Session ids are UUID4 hex strings generated at creation time
- TTL is measured from the last update, so active flows never expire
- create() raises ValueError when max_sessions is reached
- Default TTL is 1 hour (3600 seconds)
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from clip_refiner.core.ir import FaceCandidate, SpeakerSnippet
from clip_refiner.speakers.assignment import AssignmentSession, AssignmentState

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


@dataclass
class SessionRecord:
    """One assignment flow held by the API."""

    id: str
    session: AssignmentSession
    snippets: List[SpeakerSnippet]
    faces_by_speaker: Dict[str, List[FaceCandidate]]
    created_at: float
    updated_at: float = field(default=0.0)


class AssignmentSessionStore:
    """Thread-safe in-memory store for assignment sessions."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_sessions: int = 100,
    ) -> None:
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions

    def create(
        self,
        snippets: Sequence[SpeakerSnippet],
        faces_by_speaker: Dict[str, List[FaceCandidate]],
    ) -> SessionRecord:
        """Start a new assignment flow and store it.

        Raises:
            ValueError: If the maximum number of sessions is reached.
        """
        session = AssignmentSession()
        session.begin(snippets, faces_by_speaker)
        now = time.time()

        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise ValueError(
                    "Maximum number of assignment sessions ({}) reached".format(self.max_sessions)
                )
            record = SessionRecord(
                id=uuid.uuid4().hex,
                session=session,
                snippets=list(snippets),
                faces_by_speaker=dict(faces_by_speaker),
                created_at=now,
                updated_at=now,
            )
            self._sessions[record.id] = record

        logger.info("Created assignment session %s (%s)", record.id, session.state.name)
        return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        """Return the live record, or None for unknown ids."""
        with self._lock:
            return self._sessions.get(session_id)

    def select(self, session_id: str, slot_index: int) -> Optional[AssignmentState]:
        """Apply a face selection; None if the session does not exist.

        AssignmentError from the state machine propagates unchanged.
        """
        record = self.get(session_id)
        if record is None:
            return None
        state = record.session.select(slot_index)
        with self._lock:
            record.updated_at = time.time()
        return state

    def delete(self, session_id: str) -> bool:
        with self._lock:
            record = self._sessions.pop(session_id, None)
        if record is None:
            return False
        logger.info("Deleted assignment session %s", session_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove sessions idle for longer than the TTL; returns the count."""
        now = time.time()
        with self._lock:
            expired = [
                sid for sid, record in self._sessions.items()
                if now - record.updated_at > self._ttl_seconds
            ]
            for sid in expired:
                del self._sessions[sid]
        for sid in expired:
            logger.info("Expired assignment session %s", sid)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
