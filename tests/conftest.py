"""Test configuration for Clurb."""

from __future__ import annotations

import uuid
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient

from clurb.core.config import reset_settings_cache
from clurb.core.db import reset_database_state
from clurb.core.security import create_access_token
from clurb.infrastructure.realtime import hub


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Provide isolated configuration for each test."""

    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("STORAGE_DIR", str(tmp_path / "storage"))
    monkeypatch.setenv("STORAGE_BASE_URL", "/files")
    monkeypatch.setenv("PROGRESS_DEBOUNCE_SECONDS", "0.2")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    reset_settings_cache()
    reset_database_state()
    hub.reset()
    yield
    reset_settings_cache()
    reset_database_state()
    hub.reset()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    """Return a test client for the FastAPI application."""

    from clurb.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


def make_token(user_id: uuid.UUID) -> str:
    return create_access_token({"sub": str(user_id)}, timedelta(hours=1))


def auth_headers(user_id: uuid.UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture()
def make_user(client: TestClient) -> Callable[..., uuid.UUID]:
    """Create a profile through the API and return its id."""

    def _make_user(username: str, display_name: str | None = None) -> uuid.UUID:
        user_id = uuid.uuid4()
        response = client.put(
            "/users/me",
            json={"username": username, "display_name": display_name},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 200, response.text
        return user_id

    return _make_user


@pytest.fixture()
def make_document(client: TestClient) -> Callable[..., Dict]:
    """Register a document owned by the given user."""

    def _make_document(owner_id: uuid.UUID, title: str = "Dune", total_pages: int = 10) -> Dict:
        response = client.post(
            "/documents",
            json={"title": title, "file_url": f"/files/{owner_id}/book.pdf", "total_pages": total_pages},
            headers=auth_headers(owner_id),
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make_document


@pytest.fixture()
def share(client: TestClient) -> Callable[[Dict, uuid.UUID, str], None]:
    """Invite a user to a document and accept the invitation."""

    def _share(document: Dict, invitee_id: uuid.UUID, invitee_username: str) -> None:
        invited = client.post(
            f"/documents/{document['uuid']}/invitations",
            json={"invitee_username": invitee_username},
            headers=auth_headers(uuid.UUID(document["owner_id"])),
        )
        assert invited.status_code == 201, invited.text
        accepted = client.patch(
            f"/invitations/{invited.json()['uuid']}",
            json={"action": "accept"},
            headers=auth_headers(invitee_id),
        )
        assert accepted.status_code == 200, accepted.text

    return _share


@pytest.fixture()
def activity_log(client: TestClient) -> Callable[[Dict], list]:
    """Read the activity events recorded for a document."""

    from clurb.core.db import SessionLocal
    from clurb.db.repositories.activity_repository import ActivityRepository

    def _activity_log(document: Dict) -> list:
        async def _load() -> list:
            async with SessionLocal() as session:
                return await ActivityRepository(session).list_for_document(uuid.UUID(document["uuid"]))

        return client.portal.call(_load)

    return _activity_log
