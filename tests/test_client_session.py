"""Tests for the optimistic chat client against the real application."""

import uuid

import httpx
import pytest

from clurb.client.session import ReadingSessionClient
from clurb.core.db import init_db
from clurb.main import create_app
from conftest import auth_headers


async def _http(app, user_id) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://clurb.test", headers=auth_headers(user_id)
    )


@pytest.mark.asyncio
async def test_send_message_confirms_in_place() -> None:
    app = create_app()
    await init_db()
    alice, bob = uuid.uuid4(), uuid.uuid4()

    async with await _http(app, alice) as alice_http, await _http(app, bob) as bob_http:
        await alice_http.put("/users/me", json={"username": "alice", "display_name": "Alice"})
        await bob_http.put("/users/me", json={"username": "bob"})
        document = (await alice_http.post(
            "/documents", json={"title": "Dune", "file_url": f"/files/{alice}/dune.pdf", "total_pages": 10}
        )).json()
        invitation = (await alice_http.post(
            f"/documents/{document['uuid']}/invitations", json={"invitee_username": "bob"}
        )).json()
        await bob_http.patch(f"/invitations/{invitation['uuid']}", json={"action": "accept"})

        session = ReadingSessionClient(alice_http, document["uuid"], alice)
        hello = await session.send_message("hello")
        world = await session.send_message("world")

        assert [entry.content for entry in session.messages] == ["hello", "world"]
        assert all(not entry.is_pending for entry in session.messages)
        assert hello.id != world.id

        # The channel echo of our own message must not duplicate it
        await session.handle_event({
            "type": "message_inserted",
            "data": {
                "uuid": hello.id,
                "document_id": document["uuid"],
                "sender_id": str(alice),
                "content": "hello",
                "created_at": hello.created_at.isoformat(),
                "client_id": hello.client_id,
            },
        })
        assert len(session.messages) == 2

        peer = (await bob_http.post(
            f"/documents/{document['uuid']}/messages", json={"content": "hi alice"}
        )).json()
        await session.handle_event({"type": "message_inserted", "data": peer})
        assert [entry.content for entry in session.messages] == ["hello", "world", "hi alice"]
        assert session.messages[-1].sender["username"] == "bob"

        await session.handle_event({
            "type": "presence_sync",
            "data": {"members": {str(alice): {"connections": 1}, str(bob): {"connections": 2}}},
        })
        assert session.online == frozenset({str(alice), str(bob)})

        fresh = ReadingSessionClient(alice_http, document["uuid"], alice)
        loaded = await fresh.load_messages()
        assert [entry.content for entry in loaded] == ["hello", "world", "hi alice"]
        assert loaded[0].sender["display_name"] == "Alice"


@pytest.mark.asyncio
async def test_failed_send_removes_optimistic_message() -> None:
    app = create_app()
    await init_db()
    alice = uuid.uuid4()

    async with await _http(app, alice) as alice_http:
        await alice_http.put("/users/me", json={"username": "alice"})
        session = ReadingSessionClient(alice_http, uuid.uuid4(), alice)

        assert await session.send_message("anyone there?") is None
        assert session.messages == ()
        assert await session.send_message("   ") is None
