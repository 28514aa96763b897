"""Tests for the per-document chat stream."""

from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from clurb.db.repositories.activity_repository import ActivityRepository
from clurb.domains.activity.entities import ActionType
from conftest import auth_headers, make_token


def _send(client: TestClient, document, user_id, content, client_id=None):
    return client.post(
        f"/documents/{document['uuid']}/messages",
        json={"content": content, "client_id": client_id},
        headers=auth_headers(user_id),
    )


def test_message_is_stored_and_listed(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice)

    response = _send(client, document, alice, "  hello  ", client_id="temp-1")
    assert response.status_code == 201
    payload = response.json()
    assert payload["content"] == "hello"
    assert payload["client_id"] == "temp-1"
    assert payload["sender_id"] == str(alice)

    listed = client.get(f"/documents/{document['uuid']}/messages", headers=auth_headers(alice)).json()
    assert [message["uuid"] for message in listed["messages"]] == [payload["uuid"]]


def test_empty_and_oversized_messages_are_rejected(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice)

    assert _send(client, document, alice, "   ").status_code == 422
    assert _send(client, document, alice, "x" * 2001).status_code == 422
    assert _send(client, document, alice, "x" * 2000).status_code == 201


def test_history_returns_latest_messages_oldest_first(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice)
    for text in ("one", "two", "three"):
        assert _send(client, document, alice, text).status_code == 201

    response = client.get(
        f"/documents/{document['uuid']}/messages", params={"limit": 2}, headers=auth_headers(alice)
    )
    messages = response.json()["messages"]
    assert [message["content"] for message in messages] == ["two", "three"]


def test_message_times_strictly_increase(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice)
    for index in range(5):
        _send(client, document, alice, f"burst {index}")

    messages = client.get(f"/documents/{document['uuid']}/messages", headers=auth_headers(alice)).json()["messages"]
    times = [message["created_at"] for message in messages]
    assert len(set(times)) == 5
    assert [message["content"] for message in messages] == [f"burst {index}" for index in range(5)]


def test_non_member_cannot_read_or_write(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    mallory = make_user("mallory")
    document = make_document(alice)

    assert _send(client, document, mallory, "hi").status_code == 404
    assert client.get(
        f"/documents/{document['uuid']}/messages", headers=auth_headers(mallory)
    ).status_code == 404


def test_members_receive_inserted_messages(client: TestClient, make_user, make_document, share) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    document = make_document(alice)
    share(document, bob, "bob")

    with client.websocket_connect(f"/ws/documents/{document['uuid']}?token={make_token(alice)}") as ws:
        assert ws.receive_json()["type"] == "connected"
        assert ws.receive_json()["type"] == "presence_sync"

        sent = _send(client, document, bob, "hey alice", client_id="temp-bob").json()

        event = ws.receive_json()
        assert event["type"] == "message_inserted"
        assert event["data"]["uuid"] == sent["uuid"]
        assert event["data"]["client_id"] == "temp-bob"
        assert event["data"]["sender_id"] == str(bob)


def test_sent_message_is_logged_by_length_only(client: TestClient, make_user, make_document, activity_log) -> None:
    alice = make_user("alice")
    document = make_document(alice)

    _send(client, document, alice, "meet me on page 42")

    sent = [event for event in activity_log(document) if event.action_type == ActionType.CHAT_MESSAGE_SENT]
    assert len(sent) == 1
    assert sent[0].metadata == {"message_length": len("meet me on page 42")}
    assert "page 42" not in str(sent[0].metadata)


def test_message_survives_activity_log_failure(
    client: TestClient, make_user, make_document, activity_log, monkeypatch
) -> None:
    alice = make_user("alice")
    document = make_document(alice)

    async def failing_create(self, event):
        raise SQLAlchemyError("activity table is locked")

    monkeypatch.setattr(ActivityRepository, "create", failing_create)

    response = _send(client, document, alice, "still here")
    assert response.status_code == 201
    listed = client.get(f"/documents/{document['uuid']}/messages", headers=auth_headers(alice)).json()
    assert [message["content"] for message in listed["messages"]] == ["still here"]
    assert not any(event.action_type == ActionType.CHAT_MESSAGE_SENT for event in activity_log(document))
