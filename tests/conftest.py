# tests/conftest.py
import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_USERNAME"] = "root"
os.environ["ADMIN_PASSWORD"] = "hunter22"

from fastapi.testclient import TestClient

from app.auth.models import Profile
from app.comment.presence import presence
from app.core.database import Base, get_db
from app.main import app


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture(autouse=True)
def clear_presence():
    presence.reset()
    yield
    presence.reset()


@pytest.fixture
def client(db_session):
    """TestClient wired to the per-test database."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    """Create an account through the API and return (headers, profile)."""
    def _signup(username: str, password: str = "secret123"):
        r = client.post(
            "/auth/signup",
            json={"username": username, "email": f"{username.lower()}@tracker.dev", "password": password},
        )
        assert r.status_code == 201, r.text
        data = r.json()
        return auth(data["access_token"]), data["profile"]
    return _signup


@pytest.fixture
def alice(signup):
    return signup("alice")


@pytest.fixture
def bob(signup):
    return signup("bob")


@pytest.fixture
def moderator(signup, db_session):
    """A community account flagged as admin on its profile."""
    headers, profile = signup("moderator")
    row = db_session.query(Profile).filter(Profile.id == profile["id"]).one()
    row.is_admin = True
    db_session.commit()
    return headers, profile


@pytest.fixture
def admin_headers(client):
    r = client.post("/admin/login", json={"username": "root", "password": "hunter22"})
    assert r.status_code == 200, r.text
    return auth(r.json()["token"])


@pytest.fixture
def make_ticket(client):
    def _make(headers, title="Crash on save", description="The editor crashes whenever I press save.", type="bug"):
        r = client.post("/tickets", json={"title": title, "description": description, "type": type}, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make
