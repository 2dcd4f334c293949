# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from stockroom.database import create_db_engine, get_db, init_db
from stockroom.main import app
from stockroom.services import auth_service
from tests.factories import make_user


@pytest.fixture
def engine(tmp_path):
    # File-backed: one connection per session
    engine = create_db_engine(f"sqlite:///{tmp_path / 'stockroom-test.db'}")
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def other_user(db):
    return make_user(db)


@pytest.fixture
def client(session_factory, user):
    """Authenticated client; requests run on their own sessions."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    client.headers["Authorization"] = f"Bearer {auth_service.create_access_token(user.id, user.username)}"
    try:
        yield client
    finally:
        app.dependency_overrides.clear()
