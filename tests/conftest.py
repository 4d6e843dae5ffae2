"""Shared fixtures: an isolated SQLite database per test and a TestClient bound to it."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.api.deps import get_db
from app.core.config import settings
from app.core.security import make_access_token
from app.db.model_registry import metadata
from app.db.session import build_engine
from app.main import app as fastapi_app
from app.services import auth_service
from app.services import password_reset as reset_service


@pytest.fixture(autouse=True)
def test_settings(monkeypatch, tmp_path):
    # bcrypt's minimum cost keeps the suite fast
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "smtp_server", "")
    monkeypatch.setattr(settings, "jwt_secret", "testing_secret")
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    return settings


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    metadata.create_all(bind=engine)
    yield engine
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
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def outbox(monkeypatch):
    """Capture OTP emails instead of sending them: list of (email, otp, minutes)."""
    sent = []

    def fake_send(to_email, otp, minutes):
        sent.append((to_email, otp, minutes))
        return True

    monkeypatch.setattr(reset_service, "send_otp_email", fake_send)
    return sent


@pytest.fixture
def make_user(db):
    def _make(email="user@example.com", password="password123", full_name="Test User"):
        return auth_service.register_user(db, full_name, email, password)
    return _make


@pytest.fixture
def auth_header():
    def _header(user_id, email="user@example.com"):
        return {"Authorization": f"Bearer {make_access_token(user_id, email)}"}
    return _header
