"""Shared test fixtures."""

from pathlib import Path

import pytest

from cozy.notifications import NotificationRouter
from cozy.profiles.models import ProfileUpdate
from cozy.services import Services
from cozy.storage import BlobStore


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("cozy.config.settings.turso_database_url", "")


@pytest.fixture(autouse=True)
def _offline_llm(monkeypatch: pytest.MonkeyPatch) -> None:
    """No test talks to the real API unless it patches the client itself."""
    monkeypatch.setattr("cozy.config.settings.anthropic_api_key", "")


@pytest.fixture(autouse=True)
def _reset_router():
    NotificationRouter._reset()
    yield
    NotificationRouter._reset()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def blobs(tmp_path: Path) -> BlobStore:
    """Create a BlobStore rooted in a temporary directory."""
    return BlobStore(root=tmp_path / "storage", base_url="http://test")


@pytest.fixture
def services(tmp_path: Path, _no_turso) -> Services:
    """Every store wired over one temp database."""
    return Services.build(
        db_path=tmp_path / "test.db",
        storage_dir=tmp_path / "storage",
        base_url="http://test",
    )


PASSWORD = "correct horse battery"


@pytest.fixture
def make_user(services: Services):
    """Factory: sign up a user, optionally filling in every required profile field."""

    async def _make(email: str, *, name: str = "", complete: bool = False):
        session = await services.auth.sign_up(email, PASSWORD, name or email.split("@")[0])
        if complete:
            await services.profiles.update(
                session.user_id,
                ProfileUpdate(bio="Likes hiking", location="Lisbon", gender="female"),
            )
        return session

    return _make
