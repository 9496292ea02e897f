from datetime import timedelta

from app.models.auth import FamilySession
from app.services.session_service import clear_session, create_session, get_session, purge_expired_sessions


def test_created_session_resolves(db, family):
    s = create_session(db, family.id)
    found = get_session(db, s.token)
    assert found is not None
    assert found.family_id == family.id


def test_unknown_or_missing_token_is_absent(db):
    assert get_session(db, "nope") is None
    assert get_session(db, None) is None
    assert get_session(db, "") is None


def test_expired_session_is_deleted_on_lookup(db, family):
    s = create_session(db, family.id, ttl=timedelta(seconds=-1))
    token = s.token
    assert get_session(db, token) is None
    assert db.query(FamilySession).filter_by(token=token).first() is None


def test_clear_session_is_a_noop_when_absent(db, family):
    s = create_session(db, family.id)
    clear_session(db, s.token)
    assert get_session(db, s.token) is None
    clear_session(db, s.token)
    clear_session(db, None)


def test_purge_expired_sessions(db, family):
    create_session(db, family.id, ttl=timedelta(seconds=-5))
    create_session(db, family.id, ttl=timedelta(seconds=-5))
    live = create_session(db, family.id)
    assert purge_expired_sessions(db) == 2
    assert get_session(db, live.token) is not None
