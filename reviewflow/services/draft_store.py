"""
In-memory holder for review sessions and their draft submissions.

Drafts are never written to the database. Idle sessions expire after
SESSION_TTL_MINUTES and are swept periodically.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import logging
import secrets
import threading

from reviewflow.core.config import settings
from reviewflow.core.errors import SessionNotFound
from reviewflow.services.campaign_resolver import ResolvedCampaign
from reviewflow.services.review_workflow import WorkflowSession

logger = logging.getLogger(__name__)


class DraftStore:
    def __init__(self, ttl_minutes: Optional[int] = None, cleanup_interval: timedelta = timedelta(minutes=5)):
        if ttl_minutes is None:
            ttl_minutes = settings.SESSION_TTL_MINUTES
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: Dict[str, WorkflowSession] = {}
        self._lock = threading.Lock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = datetime.now(timezone.utc)

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, session: WorkflowSession, now: datetime) -> bool:
        return now - session.last_seen_at > self.ttl

    def _cleanup_expired(self, now: datetime):
        """Drop idle sessions. Caller holds the lock."""
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        for session_id in list(self._sessions.keys()):
            session = self._sessions[session_id]
            if self._is_expired(session, now):
                session.cancelled = True
                del self._sessions[session_id]
                logger.info("[DRAFT STORE] Session %s expired", session_id)

    def create(self, campaign: ResolvedCampaign) -> WorkflowSession:
        session = WorkflowSession(id=secrets.token_urlsafe(24), campaign=campaign)
        with self._lock:
            self._cleanup_expired(session.created_at)
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> WorkflowSession:
        now = datetime.now(timezone.utc)
        with self._lock:
            self._cleanup_expired(now)
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound()
            if self._is_expired(session, now):
                session.cancelled = True
                del self._sessions[session_id]
                raise SessionNotFound()
            return session

    def discard(self, session_id: str) -> bool:
        """
        Forget a session. Anything still running for it (verification,
        upload) sees session.cancelled and drops its result.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.cancelled = True
        logger.info("[DRAFT STORE] Session %s discarded", session_id)
        return True
