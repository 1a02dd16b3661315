import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ecotrack import crud, models
from ecotrack.database import Base, get_db
from ecotrack.main import app

TEST_REWARDS = [
    {"name": "Seed Packet", "description": "Wildflower seeds.", "points_required": 50},
    {"name": "Reusable Water Bottle", "description": "Stainless steel.", "points_required": 500},
    {"name": "Retired Mug", "description": "No longer stocked.", "points_required": 10, "available": False},
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def rewards(db):
    crud.seed_rewards(db, TEST_REWARDS)
    return {r.name: r.id for r in db.query(models.Reward).all()}


@pytest.fixture
def make_user(db):
    """Insert a user directly, skipping bcrypt so ledger tests stay fast."""
    def _make(email="user@example.com", points=0):
        user = models.User(email=email, password_hash="not-a-real-hash", total_points=points)
        db.add(user)
        db.commit()
        return email
    return _make


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    def _register(email="recycler@example.com", password="s3cret-pass"):
        r = client.post("/api/users/register", json={"email": email, "password": password})
        assert r.status_code == 201, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}
    return _register
