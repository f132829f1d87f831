"""
Session Management for Chat State

Keeps one ChatSession per browser tab or CLI run and expires idle ones.
"""

import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional

from models.schemas import ChatSession


class SessionManager:
    """Registry of chat sessions with idle expiry"""

    def __init__(self, session_timeout_minutes: int = 60):
        """
        Initialize session manager.

        Args:
            session_timeout_minutes: Minutes of inactivity before a session expires
        """
        self.sessions: Dict[str, ChatSession] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)

    def _expired(self, session: ChatSession, now: datetime) -> bool:
        # a turn in flight keeps its session alive
        return not session.is_loading and now - session.last_updated > self.session_timeout

    def create_session(self) -> ChatSession:
        """
        Create a new chat session.

        Returns:
            ChatSession: The new session, holding only the greeting
        """
        session_id = str(uuid.uuid4())
        session = ChatSession(session_id=session_id)
        self.sessions[session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        """
        Get an existing session.

        Returns:
            ChatSession if found and not expired, None otherwise
        """
        session = self.sessions.get(session_id)
        if session is None:
            return None

        if self._expired(session, datetime.now()):
            del self.sessions[session_id]
            return None

        return session

    def cleanup_expired_sessions(self) -> int:
        """
        Remove all expired sessions.

        Returns:
            Number of sessions cleaned up
        """
        now = datetime.now()
        expired_ids = [
            sid for sid, session in list(self.sessions.items())
            if self._expired(session, now)
        ]

        for sid in expired_ids:
            self.sessions.pop(sid, None)

        return len(expired_ids)

    def get_session_count(self) -> int:
        """Get number of active sessions"""
        return len(self.sessions)


_session_manager: Optional[SessionManager] = None


def get_session_manager(session_timeout_minutes: int = 60) -> SessionManager:
    """Get the process-wide session manager, creating it on first use"""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(session_timeout_minutes=session_timeout_minutes)
    return _session_manager
