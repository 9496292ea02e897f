import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.api.routes import app_actions
from app.db.base import Base
from app.db.session import build_engine
from app.main import app
from app.models.child import Child
from app.services.child_service import save_child
from app.services.family_service import create_family

PASSWORD = "geheim123"


@pytest.fixture
def engine():
    # one shared in-memory database for every connection of the test
    eng = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_family(db):
    counter = iter(range(1, 1000))

    def _make(email=None, family_name="Jansen", city="Utrecht", password=PASSWORD, **kwargs):
        n = next(counter)
        return create_family(
            db,
            family_name=family_name,
            city=city,
            email=email or f"ouder{n}@example.com",
            password=password,
            **kwargs,
        )
    return _make


@pytest.fixture
def family(make_family):
    return make_family(email="ouder@example.com")


@pytest.fixture
def make_child(db):
    def _make(family, name="Sam", pin="1234", avatar="lion", points=0, total_points_ever=0):
        child_id = save_child(db, family_id=family.id, name=name, pin=pin, avatar=avatar)
        child = db.get(Child, child_id)
        child.points = points
        child.total_points_ever = total_points_ever
        db.commit()
        return child
    return _make


@pytest.fixture
def notifications(monkeypatch):
    sent = []

    def _capture(type, to, data=None):
        sent.append({"type": type, "to": to, "data": data})
        return True

    monkeypatch.setattr(app_actions, "send_notification", _capture)
    return sent


@pytest.fixture
def client(session_factory, notifications):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    # not used as a context manager: the startup hook would touch the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()
