import os
os.environ["TESTING"] = "1"
os.environ.setdefault("SECRET_KEY", "test-secret")
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import sys
from pathlib import Path

import uuid

sys.path.append(str(Path(__file__).resolve().parents[2]))

from listing_review import models, notify
from listing_review.auth import create_access_token, get_password_hash
from listing_review.main import app
from listing_review.database import Base, get_db

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    notify.EMAIL_OUTBOX.clear()
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory():
    """Open extra sessions to play a second, concurrent request."""
    opened = []

    def _open():
        session = TestingSessionLocal()
        opened.append(session)
        return session

    yield _open
    for session in opened:
        session.close()


@pytest.fixture
def make_user(db):
    """
    purpose: insert users directly so tests can pick admin or vendor roles
    outputs: models.User bound to the shared ``db`` session
    """

    def _make(*, email: str | None = None, is_admin: bool = False, password: str = "secret"):
        user = models.User(
            email=email or f"user-{uuid.uuid4()}@example.com",
            hashed_password=get_password_hash(password),
            full_name="Admin" if is_admin else "Vendor Owner",
            is_admin=is_admin,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def auth_headers(user: models.User) -> dict:
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def admin(make_user):
    return make_user(is_admin=True)


@pytest.fixture
def owner(make_user):
    return make_user()


@pytest.fixture
def vendor(db, owner):
    row = models.Vendor(
        owner_id=owner.id,
        name="Acme Co",
        description="Home inspections",
        website_url="https://acme.example.com",
        contact_email="hello@acme.example.com",
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def service(db, vendor):
    row = models.Service(
        vendor_id=vendor.id,
        title="Roof inspection",
        category="inspection",
        price=150.0,
        duration_minutes=60,
        tags=["roof", "inspection"],
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def ensure_access_token(client, *, email: str | None = None, password: str = "secret"):
    """
    purpose: register a fresh account through the API, falling back to login when it exists
    outputs: tuple(access_token str, normalized email str)
    """

    normalized_email = email or f"user-{uuid.uuid4()}@example.com"
    payload = {"email": normalized_email, "password": password}
    resp = client.post("/api/auth/register", json=payload)
    if resp.status_code == 200:
        data = resp.json()
    elif resp.status_code == 400 and resp.json().get("detail") == "Email already registered":
        login_resp = client.post("/api/auth/login", json=payload)
        assert login_resp.status_code == 200, f"Login failed for existing user {normalized_email}: {login_resp.text}"
        data = login_resp.json()
    else:
        raise AssertionError(f"Unexpected auth bootstrap failure for {normalized_email}: {resp.status_code} {resp.text}")
    token = data.get("access_token")
    if not token:
        raise AssertionError(f"Authentication response missing token for {normalized_email}: {data}")
    return token, normalized_email


@pytest.fixture
def registered_headers(client):
    def _register(email: str | None = None, password: str = "secret"):
        token, normalized_email = ensure_access_token(client, email=email, password=password)
        return {"Authorization": f"Bearer {token}"}, normalized_email

    return _register
