"""Pytest fixtures: per-test SQLite database, API client and a recording LINE notifier."""
import os
import tempfile

# Settings are read once per process, so the test environment goes in before any gomeal import
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_INVITE_CODE"] = "ADMINCODE"
os.environ["LINE_MESSAGING_CHANNEL_SECRET"] = "test-channel-secret"
os.environ["PROFILE_IMAGE_DIR"] = tempfile.mkdtemp(prefix="gomeal-images-")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from gomeal.database import Base, get_db
from gomeal.models.group_meal import ACTIVE_STATUSES, GroupMeal, GroupMealParticipant
from gomeal.main import app
from gomeal.notifications.dispatcher import LineNotifier, get_notifier
from gomeal.notifications.line_client import LineMessagingClient

SQLITE_URL = "sqlite:///./test.db"
DEFAULT_COMMUNITY = {"communityName": "KING", "communityCode": "KINGCODE"}


class RecordingLineClient(LineMessagingClient):
    """Captures pushes and replies instead of calling LINE."""

    def __init__(self):
        super().__init__("test-access-token")
        self.pushes = []
        self.replies = []

    def push(self, to, messages):
        self.pushes.append((to, messages))
        return True

    def reply(self, reply_token, messages):
        self.replies.append((reply_token, messages))
        return True


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def line_client():
    return RecordingLineClient()


@pytest.fixture(scope="function")
def client(db_engine, line_client):
    """TestClient with the database and LINE notifier overridden."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: LineNotifier(line_client, "http://localhost:3000")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: drive the API the way a client would
# ---------------------------------------------------------------------------
def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_user(client: TestClient, email: str, name: str = "", password: str = "password123") -> dict:
    """POST /api/auth/register and return {token, user, headers}."""
    resp = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    body["headers"] = auth_headers(body["token"])
    # Requests authenticate by header only
    client.cookies.clear()
    return body


def join_default_community(client: TestClient, headers: dict) -> dict:
    resp = client.post("/api/community/join", json=DEFAULT_COMMUNITY, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def set_availability(client: TestClient, headers: dict, slots=None) -> list:
    if slots is None:
        slots = [
            {"weekday": day, "timeSlot": "DAY", "status": "AVAILABLE"}
            for day in ("MON", "WED", "FRI")
        ]
    resp = client.put("/api/availability/", json=slots, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def create_member(client: TestClient, email: str, name: str = "Member", with_availability: bool = True) -> dict:
    """Register, join the default community and optionally fill in three available slots."""
    user = register_user(client, email, name)
    join_default_community(client, user["headers"])
    if with_availability:
        set_availability(client, user["headers"])
    return user


def register_admin(client: TestClient, email: str = "admin@example.com") -> dict:
    resp = client.post("/api/auth/register-admin", json={
        "email": email, "password": "password123", "inviteCode": "ADMINCODE", "name": "Admin",
    })
    assert resp.status_code == 201, resp.text
    body = resp.json()
    body["headers"] = auth_headers(body["token"])
    client.cookies.clear()
    return body


def make_match(client: TestClient, a: dict, b: dict) -> str:
    """Mutual YES between two members; returns the match id."""
    resp = client.post("/api/likes", json={"targetUserId": b["user"]["id"], "answer": "YES"}, headers=a["headers"])
    assert resp.status_code == 200, resp.text
    resp = client.post("/api/likes", json={"targetUserId": a["user"]["id"], "answer": "YES"}, headers=b["headers"])
    assert resp.status_code == 200, resp.text
    assert resp.json()["matched"] is True
    return resp.json()["matchId"]


def assert_capacity_invariant(db, group_meal_id: str) -> None:
    """Active seats never exceed capacity, and FULL exactly when they meet it."""
    db.expire_all()
    meal = db.query(GroupMeal).filter(GroupMeal.group_meal_id == group_meal_id).one()
    active = db.query(GroupMealParticipant).filter(
        GroupMealParticipant.group_meal_id == group_meal_id,
        GroupMealParticipant.status.in_(ACTIVE_STATUSES),
    ).count()
    assert active <= meal.capacity
    assert (meal.status.value == "FULL") == (active == meal.capacity)
