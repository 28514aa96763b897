"""Tests for ephemeral presence in reading sessions."""

import uuid

import pytest
from fastapi.testclient import TestClient

from clurb.domains.presence.entities import PresenceRoster
from clurb.infrastructure.realtime import RealtimeHub, document_channel
from conftest import auth_headers, make_token


class FakeSocket:
    def __init__(self, broken: bool = False):
        self.sent = []
        self.broken = broken

    async def send_json(self, data) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)


def test_roster_counts_user_once_across_tabs() -> None:
    roster = PresenceRoster()
    user = uuid.uuid4()

    roster.join(user, "tab-1")
    roster.join(user, "tab-2")
    assert roster.online() == {user}
    assert roster.members()[str(user)]["connections"] == 2

    assert roster.leave("tab-1") is None
    assert roster.online() == {user}
    assert roster.leave("tab-2") == user
    assert roster.online() == set()
    assert roster.leave("tab-2") is None


@pytest.mark.asyncio
async def test_hub_syncs_full_roster_on_join_and_leave() -> None:
    hub = RealtimeHub()
    channel = document_channel(uuid.uuid4())
    alice, bob = uuid.uuid4(), uuid.uuid4()
    alice_socket, bob_socket = FakeSocket(), FakeSocket()

    hub.subscribe(channel, "a", alice_socket)
    await hub.track(channel, "a", alice)
    hub.subscribe(channel, "b", bob_socket)
    await hub.track(channel, "b", bob)

    assert set(alice_socket.sent[-1]["data"]["members"]) == {str(alice), str(bob)}
    assert bob_socket.sent[-1] == alice_socket.sent[-1]

    await hub.unsubscribe(channel, "b")
    assert alice_socket.sent[-1]["type"] == "presence_sync"
    assert set(alice_socket.sent[-1]["data"]["members"]) == {str(alice)}
    assert hub.online(channel) == {alice}


@pytest.mark.asyncio
async def test_hub_drops_connections_that_fail() -> None:
    hub = RealtimeHub()
    channel = document_channel(uuid.uuid4())
    alice, ghost = uuid.uuid4(), uuid.uuid4()
    alice_socket = FakeSocket()

    hub.subscribe(channel, "a", alice_socket)
    await hub.track(channel, "a", alice)
    hub.subscribe(channel, "g", FakeSocket(broken=True))
    await hub.track(channel, "g", ghost)

    assert hub.online(channel) == {alice}
    assert set(alice_socket.sent[-1]["data"]["members"]) == {str(alice)}
    assert await hub.publish(channel, {"type": "ping"}) == 1


def test_presence_follows_socket_lifecycle(client: TestClient, make_user, make_document, share) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    document = make_document(alice)
    share(document, bob, "bob")
    url = f"/ws/documents/{document['uuid']}"

    with client.websocket_connect(f"{url}?token={make_token(alice)}") as alice_ws:
        alice_ws.receive_json()
        assert set(alice_ws.receive_json()["data"]["members"]) == {str(alice)}

        with client.websocket_connect(f"{url}?token={make_token(bob)}") as bob_ws:
            bob_ws.receive_json()
            assert set(bob_ws.receive_json()["data"]["members"]) == {str(alice), str(bob)}
            assert set(alice_ws.receive_json()["data"]["members"]) == {str(alice), str(bob)}

            presence = client.get(f"/documents/{document['uuid']}/presence", headers=auth_headers(alice))
            assert set(presence.json()["online"]) == {str(alice), str(bob)}

        left = alice_ws.receive_json()
        assert left["type"] == "presence_sync"
        assert set(left["data"]["members"]) == {str(alice)}


def test_second_tab_keeps_user_online(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    document = make_document(alice)
    url = f"/ws/documents/{document['uuid']}?token={make_token(alice)}"

    with client.websocket_connect(url) as first_tab:
        first_tab.receive_json()
        first_tab.receive_json()

        with client.websocket_connect(url) as second_tab:
            second_tab.receive_json()
            second_tab.receive_json()
            joined = first_tab.receive_json()
            assert joined["data"]["members"][str(alice)]["connections"] == 2

        after_close = first_tab.receive_json()
        assert list(after_close["data"]["members"]) == [str(alice)]
        assert after_close["data"]["members"][str(alice)]["connections"] == 1


def test_presence_is_only_visible_to_members(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    mallory = make_user("mallory")
    document = make_document(alice)

    response = client.get(f"/documents/{document['uuid']}/presence", headers=auth_headers(mallory))
    assert response.status_code == 404
