import uuid

from fastapi.testclient import TestClient

from conftest import auth_headers


def test_health_endpoint_returns_ok(client: TestClient) -> None:
    """The health endpoint should respond with a simple ok payload."""

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Clurb API"


def test_requests_without_token_are_rejected(client: TestClient) -> None:
    response = client.get("/documents")
    assert response.status_code == 401


def test_token_without_profile_is_rejected(client: TestClient) -> None:
    """A valid token is not enough: the profile has to exist first."""

    response = client.get("/documents", headers=auth_headers(uuid.uuid4()))
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


def test_profile_upsert_and_username_conflict(client: TestClient, make_user) -> None:
    alice = make_user("alice", "Alice")

    me = client.get("/users/me", headers=auth_headers(alice))
    assert me.status_code == 200
    assert me.json()["display_name"] == "Alice"

    renamed = client.put(
        "/users/me", json={"username": "alice", "display_name": "Alice L."}, headers=auth_headers(alice)
    )
    assert renamed.status_code == 200
    assert renamed.json()["display_name"] == "Alice L."

    taken = client.put("/users/me", json={"username": "alice"}, headers=auth_headers(uuid.uuid4()))
    assert taken.status_code == 400
    assert taken.json()["detail"] == "Username already taken"
