from datetime import datetime, timedelta

from services.session_manager import SessionManager


def test_create_and_get_session():
    manager = SessionManager()
    session = manager.create_session()

    assert manager.get_session(session.session_id) is session
    assert len(session.conversation) == 1
    assert manager.get_session("unknown") is None
    assert manager.get_session_count() == 1


def test_expired_session_is_dropped():
    manager = SessionManager(session_timeout_minutes=5)
    session = manager.create_session()
    session.last_updated = datetime.now() - timedelta(minutes=10)

    assert manager.get_session(session.session_id) is None
    assert manager.get_session_count() == 0


def test_loading_session_never_expires():
    manager = SessionManager(session_timeout_minutes=5)
    session = manager.create_session()
    session.last_updated = datetime.now() - timedelta(minutes=10)
    session.is_loading = True

    assert manager.get_session(session.session_id) is session


def test_cleanup_expired_sessions():
    manager = SessionManager(session_timeout_minutes=5)
    stale = manager.create_session()
    fresh = manager.create_session()
    stale.last_updated = datetime.now() - timedelta(hours=1)

    assert manager.cleanup_expired_sessions() == 1
    assert manager.get_session(fresh.session_id) is fresh


def test_cleanup_tolerates_sessions_created_meanwhile():
    manager = SessionManager(session_timeout_minutes=5)
    stale = manager.create_session()
    stale.last_updated = datetime.now() - timedelta(hours=1)
    check_expired = manager._expired

    def expired_while_another_request_creates(session, now):
        if manager.get_session_count() < 3:
            manager.create_session()
        return check_expired(session, now)

    manager._expired = expired_while_another_request_creates

    assert manager.cleanup_expired_sessions() == 1
    assert stale.session_id not in manager.sessions
