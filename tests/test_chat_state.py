"""Tests for the client-side chat and presence reducer."""

import pytest

from clurb.client.state import (
    MessageConfirmed, MessageFailed, MessageInserted, MessagePending, MessageStatus,
    PresenceSync, SessionState, apply, event_from_payload,
)

ALICE = "11111111-1111-1111-1111-111111111111"
BOB = "22222222-2222-2222-2222-222222222222"


def _server_message(uuid, content, created_at, sender=ALICE, client_id=None):
    return {
        "uuid": uuid,
        "document_id": "doc",
        "sender_id": sender,
        "content": content,
        "created_at": created_at,
        "client_id": client_id,
    }


def _run(*events, state=None):
    state = state or SessionState()
    for event in events:
        state = apply(state, event)
    return state


def test_confirmation_replaces_pending_message() -> None:
    state = _run(
        MessagePending("temp-1", ALICE, "hello"),
        MessageConfirmed("temp-1", _server_message("m1", "hello", "2026-01-01T10:00:00Z")),
    )

    assert len(state.messages) == 1
    entry = state.messages[0]
    assert entry.status == MessageStatus.CONFIRMED
    assert (entry.id, entry.client_id, entry.content) == ("m1", "temp-1", "hello")


def test_echo_before_http_response_is_not_duplicated() -> None:
    message = _server_message("m1", "hello", "2026-01-01T10:00:00Z", client_id="temp-1")
    state = _run(
        MessagePending("temp-1", ALICE, "hello"),
        MessageInserted(message),
        MessageConfirmed("temp-1", message),
    )

    assert [entry.id for entry in state.messages] == ["m1"]
    assert not state.messages[0].is_pending


def test_echo_after_http_response_is_not_duplicated() -> None:
    message = _server_message("m1", "hello", "2026-01-01T10:00:00Z")
    state = _run(
        MessagePending("temp-1", ALICE, "hello"),
        MessageConfirmed("temp-1", message),
        MessageInserted({**message, "client_id": "temp-1"}),
        MessageInserted(message),
    )

    assert [entry.id for entry in state.messages] == ["m1"]


def test_failure_removes_only_pending_messages() -> None:
    state = _run(
        MessagePending("temp-1", ALICE, "lost"),
        MessagePending("temp-2", ALICE, "kept"),
        MessageConfirmed("temp-2", _server_message("m2", "kept", "2026-01-01T10:00:00Z")),
        MessageFailed("temp-1"),
        MessageFailed("temp-2"),
    )

    assert [entry.content for entry in state.messages] == ["kept"]


def test_rapid_messages_keep_send_order_once_settled() -> None:
    state = _run(
        MessagePending("temp-1", ALICE, "hello"),
        MessagePending("temp-2", ALICE, "world"),
        MessageConfirmed("temp-2", _server_message("m2", "world", "2026-01-01T10:00:00.000002Z")),
    )
    assert [(e.content, e.is_pending) for e in state.messages] == [("world", False), ("hello", True)]

    state = apply(state, MessageConfirmed("temp-1", _server_message("m1", "hello", "2026-01-01T10:00:00.000001Z")))
    assert [e.content for e in state.messages] == ["hello", "world"]


def test_peer_messages_are_ordered_by_server_time() -> None:
    state = _run(
        MessageInserted(_server_message("m2", "second", "2026-01-01T10:00:02+00:00", sender=BOB)),
        MessageInserted(_server_message("m1", "first", "2026-01-01T10:00:01+00:00", sender=BOB),
                        sender={"username": "bob"}),
    )

    assert [e.content for e in state.messages] == ["first", "second"]
    assert state.messages[0].sender == {"username": "bob"}


def test_pending_duplicate_client_id_is_ignored() -> None:
    state = _run(MessagePending("temp-1", ALICE, "hi"), MessagePending("temp-1", ALICE, "hi"))
    assert len(state.messages) == 1


def test_echo_from_another_sender_does_not_take_over_pending() -> None:
    foreign = _server_message("m9", "spoofed", "2026-01-01T10:00:00Z", sender=BOB, client_id="temp-1")
    state = _run(MessagePending("temp-1", ALICE, "hello"), MessageInserted(foreign))

    assert [(entry.content, entry.status) for entry in state.messages] == [
        ("spoofed", MessageStatus.CONFIRMED),
        ("hello", MessageStatus.PENDING),
    ]


def test_presence_sync_replaces_online_set() -> None:
    state = _run(
        PresenceSync({ALICE: {}, BOB: {}}),
        PresenceSync({BOB: {"connections": 2}}),
    )
    assert state.online == frozenset({BOB})


def test_payloads_map_to_events() -> None:
    presence = event_from_payload({"type": "presence_sync", "data": {"members": {ALICE: {}}}})
    assert presence == PresenceSync({ALICE: {}})

    inserted = event_from_payload({"type": "message_inserted", "data": {"uuid": "m1"}})
    assert isinstance(inserted, MessageInserted)

    assert event_from_payload({"type": "pong"}) is None


def test_unknown_event_type_is_an_error() -> None:
    with pytest.raises(TypeError):
        apply(SessionState(), object())
