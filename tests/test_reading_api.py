"""Tests for reading progress over HTTP and the reading session socket."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from starlette.websockets import WebSocketDisconnect

from clurb.db.repositories.activity_repository import ActivityRepository
from clurb.domains.activity.entities import ActionType
from conftest import auth_headers, make_token


def test_progress_is_recorded_per_user(client: TestClient, make_user, make_document, share) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    document = make_document(alice, total_pages=10)
    share(document, bob, "bob")
    url = f"/documents/{document['uuid']}/progress"

    assert client.put(url, json={"page": 3}, headers=auth_headers(alice)).status_code == 200
    assert client.put(url, json={"page": 8}, headers=auth_headers(bob)).status_code == 200
    response = client.put(url, json={"page": 4}, headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["current_page"] == 4

    assert client.get(url, headers=auth_headers(alice)).json()["current_page"] == 4
    assert client.get(url, headers=auth_headers(bob)).json()["current_page"] == 8

    members = client.get(f"/documents/{document['uuid']}/members", headers=auth_headers(alice)).json()
    pages = {member["profile"]["username"]: member["current_page"] for member in members}
    assert pages == {"alice": 4, "bob": 8}


def test_progress_before_first_page_is_not_found(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice)

    response = client.get(f"/documents/{document['uuid']}/progress", headers=auth_headers(alice))
    assert response.status_code == 404


def test_page_outside_document_is_rejected(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice, total_pages=10)
    url = f"/documents/{document['uuid']}/progress"

    too_far = client.put(url, json={"page": 11}, headers=auth_headers(alice))
    assert too_far.status_code == 400
    assert client.put(url, json={"page": 0}, headers=auth_headers(alice)).status_code == 422


def test_unknown_page_count_accepts_any_page(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice, total_pages=0)

    response = client.put(
        f"/documents/{document['uuid']}/progress", json={"page": 250}, headers=auth_headers(alice)
    )
    assert response.status_code == 200


def test_non_member_cannot_record_progress(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    mallory = make_user("mallory")
    document = make_document(alice)

    response = client.put(
        f"/documents/{document['uuid']}/progress", json={"page": 1}, headers=auth_headers(mallory)
    )
    assert response.status_code == 404


def test_socket_page_changes_are_debounced(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice, total_pages=10)

    with client.websocket_connect(f"/ws/documents/{document['uuid']}?token={make_token(alice)}") as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["data"]["user_id"] == str(alice)
        assert ws.receive_json()["type"] == "presence_sync"

        for page in (3, 4, 5):
            ws.send_json({"type": "page_changed", "data": {"page": page}})

        saved = ws.receive_json()
        assert saved["type"] == "progress_saved"
        assert saved["data"]["page"] == 5

    progress = client.get(f"/documents/{document['uuid']}/progress", headers=auth_headers(alice))
    assert progress.json()["current_page"] == 5


def test_socket_rejects_bad_frames(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice)

    with client.websocket_connect(f"/ws/documents/{document['uuid']}?token={make_token(alice)}") as ws:
        ws.receive_json()
        ws.receive_json()

        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "data": {"message": "Invalid JSON"}}

        ws.send_json({"type": "page_changed", "data": {"page": "three"}})
        assert ws.receive_json()["data"]["message"] == "Invalid page"

        ws.send_json({"type": "dance"})
        assert ws.receive_json()["data"]["message"] == "Unknown message type"

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_socket_requires_membership(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    mallory = make_user("mallory")
    document = make_document(alice)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/documents/{document['uuid']}?token={make_token(mallory)}"):
            pass
    assert exc_info.value.code == 1008


def test_socket_requires_token(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/documents/{uuid.uuid4()}"):
            pass
    assert exc_info.value.code == 1008


def test_progress_write_is_logged_as_page_view(client: TestClient, make_user, make_document, activity_log) -> None:
    alice = make_user("alice")
    document = make_document(alice, total_pages=10)

    client.put(f"/documents/{document['uuid']}/progress", json={"page": 7}, headers=auth_headers(alice))

    views = [event for event in activity_log(document) if event.action_type == ActionType.PAGE_VIEWED]
    assert [(event.user_id, event.metadata) for event in views] == [(alice, {"page": 7})]


def test_progress_survives_activity_log_failure(
    client: TestClient, make_user, make_document, activity_log, monkeypatch
) -> None:
    alice = make_user("alice")
    document = make_document(alice, total_pages=10)
    url = f"/documents/{document['uuid']}/progress"

    async def failing_create(self, event):
        raise SQLAlchemyError("activity table is locked")

    monkeypatch.setattr(ActivityRepository, "create", failing_create)

    response = client.put(url, json={"page": 6}, headers=auth_headers(alice))
    assert response.status_code == 200
    assert client.get(url, headers=auth_headers(alice)).json()["current_page"] == 6
    assert not any(event.action_type == ActionType.PAGE_VIEWED for event in activity_log(document))
