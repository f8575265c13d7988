import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from loveblog.app import create_app
from loveblog.auth.expiry import VisitorExpiryEnforcer
from loveblog.auth.session import SessionAuthority, SessionStore
from loveblog.config import load_settings
from loveblog.infra.credential_store import CredentialStore
from loveblog.infra.db import init_db
from loveblog.infra.settings_repo import SettingsRepo
from loveblog.services.password_service import PasswordService

COUPLE_PASSWORD = "Secret123"


class FakeClock:
    """Deterministic UTC clock; call it to read, ``advance`` to move forward."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture()
def settings(tmp_path: Path):
    return load_settings(
        env={},
        db_path=str(tmp_path / "data" / "love_blog.db"),
        secret_key="test-secret-key",
    )


@pytest.fixture()
def repo(settings) -> SettingsRepo:
    init_db(settings.db_path)
    return SettingsRepo(settings.db_path)


@pytest.fixture()
def credentials(repo, clock) -> CredentialStore:
    return CredentialStore(repo, clock)


@pytest.fixture()
def sessions(settings, repo, clock) -> SessionStore:
    return SessionStore(settings.db_path, max_age=settings.session_max_age, clock=clock)


@pytest.fixture()
def authority(credentials, sessions, settings, clock) -> SessionAuthority:
    return SessionAuthority(credentials, sessions, secret_key=settings.secret_key, clock=clock)


@pytest.fixture()
def enforcer(credentials, sessions, clock) -> VisitorExpiryEnforcer:
    return VisitorExpiryEnforcer(credentials, sessions, source="store", clock=clock)


@pytest.fixture()
def passwords(credentials, sessions, clock) -> PasswordService:
    return PasswordService(credentials, clock, sessions)


@pytest.fixture()
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def couple_client(client, app) -> TestClient:
    app.state.passwords.set_couple(COUPLE_PASSWORD)
    r = client.post("/auth/login", json={"password": COUPLE_PASSWORD})
    assert r.status_code == 200, r.text
    return client
