"""Tests for the reading assistant agent and its tools."""

from __future__ import annotations

import json
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import fitz
import pytest
from fastapi.testclient import TestClient

from clurb.api.http.agent import get_agent_client
from clurb.core.config import get_settings
from clurb.core.db import SessionLocal, init_db
from clurb.db.repositories.agent_repository import HighlightRepository
from clurb.db.repositories.document_repository import MembershipRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.agent.entities import clean_title
from clurb.domains.agent.services import AgentService
from clurb.domains.agent.tools import TOOL_NAMES, ReadingTools
from clurb.domains.annotations.services import AnnotationService
from clurb.domains.documents.entities import Membership, Role
from clurb.domains.documents.schemas import DocumentCreate
from clurb.domains.documents.services import DocumentService
from clurb.domains.friends.schemas import FriendRequestCreate
from clurb.domains.friends.services import FriendshipService
from clurb.domains.identity.schemas import ProfileUpsert
from clurb.domains.identity.services import ProfileService
from clurb.domains.reading.services import ReadingProgressService
from clurb.infrastructure.storage import LocalObjectStorage
from conftest import auth_headers


def _text(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="text", text=text)


def _tool_use(name: str, tool_input: dict, tool_id: str = "toolu_1") -> SimpleNamespace:
    return SimpleNamespace(type="tool_use", id=tool_id, name=name, input=tool_input)


class FakeStream:
    def __init__(self, texts, final):
        self._texts = texts
        self._final = final

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    @property
    def text_stream(self):
        async def _iterate():
            for text in self._texts:
                yield text
        return _iterate()

    async def get_final_message(self):
        return self._final


class FakeMessages:
    def __init__(self, turns, title="Dune Questions"):
        self.turns = list(turns)
        self.calls = []
        self.title = title
        self.created = []

    def stream(self, **kwargs):
        self.calls.append({**kwargs, "messages": list(kwargs["messages"])})
        texts, stop_reason, content = self.turns.pop(0)
        return FakeStream(texts, SimpleNamespace(stop_reason=stop_reason, content=content))

    async def create(self, **kwargs):
        self.created.append(kwargs)
        return SimpleNamespace(content=[_text(self.title)])


class FakeAnthropic:
    def __init__(self, turns=(), title="Dune Questions"):
        self.messages = FakeMessages(turns, title)


def _tool_then_answer(tool_name: str, tool_input: dict, answer: str) -> FakeAnthropic:
    return FakeAnthropic([
        ([], "tool_use", [_tool_use(tool_name, tool_input)]),
        ([answer], "end_turn", [_text(answer)]),
    ])


async def _collect(agent: AgentService, question: str) -> str:
    chunks = []
    async for chunk in agent.stream_reply([{"role": "user", "content": question}]):
        chunks.append(chunk)
    return "".join(chunks)


@pytest.mark.asyncio
async def test_agent_streams_text_after_tool_call() -> None:
    client = FakeAnthropic([
        (["Let me look. "], "tool_use", [_text("Let me look. "), _tool_use("get_user_books", {})]),
        (["You have ", "one book."], "end_turn", [_text("You have one book.")]),
    ])
    tools = AsyncMock()
    tools.execute.return_value = {"found": True, "count": 1}

    reply = await _collect(AgentService(tools, client=client), "What books do I have?")

    assert reply == "Let me look. You have one book."
    tools.execute.assert_awaited_once_with("get_user_books", {})
    follow_up = client.messages.calls[1]["messages"]
    assert follow_up[1]["role"] == "assistant"
    assert follow_up[1]["content"][1] == {"type": "tool_use", "id": "toolu_1", "name": "get_user_books", "input": {}}
    result = follow_up[2]["content"][0]
    assert result["tool_use_id"] == "toolu_1"
    assert result["is_error"] is False
    assert json.loads(result["content"]) == {"found": True, "count": 1}


@pytest.mark.asyncio
async def test_tool_errors_are_returned_to_the_model() -> None:
    client = _tool_then_answer("get_book_progress", {}, "Sorry.")
    tools = AsyncMock()
    tools.execute.side_effect = TypeError("missing book_title")

    assert await _collect(AgentService(tools, client=client), "How far am I?") == "Sorry."

    result = client.messages.calls[1]["messages"][-1]["content"][0]
    assert result["is_error"] is True
    assert json.loads(result["content"]) == {"error": "missing book_title"}


@pytest.mark.asyncio
async def test_agent_stops_after_max_steps() -> None:
    settings = get_settings().model_copy(update={"agent_max_steps": 2})
    client = FakeAnthropic([
        ([], "tool_use", [_tool_use("get_user_books", {})]),
        ([], "tool_use", [_tool_use("get_user_books", {})]),
        (["never"], "end_turn", [_text("never")]),
    ])
    tools = AsyncMock()
    tools.execute.return_value = {}

    assert await _collect(AgentService(tools, client=client, settings=settings), "loop") == ""
    assert len(client.messages.calls) == 2


def test_agent_requires_api_key() -> None:
    with pytest.raises(ValueError):
        AgentService(AsyncMock())


def test_tool_definitions_are_named_uniquely() -> None:
    assert len(TOOL_NAMES) == 10
    assert "get_user_friends" in TOOL_NAMES
    assert "get_document_text" in TOOL_NAMES


def test_agent_endpoint_without_key_is_unavailable(client: TestClient, make_user) -> None:
    alice = make_user("alice")

    response = client.post(
        "/agent", json={"messages": [{"role": "user", "content": "hi"}]}, headers=auth_headers(alice)
    )
    assert response.status_code == 503


def test_agent_endpoint_streams_answer(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    make_document(alice, title="Dune")
    fake = _tool_then_answer("get_user_books", {}, "You are reading Dune.")
    client.app.dependency_overrides[get_agent_client] = lambda: fake

    response = client.post(
        "/agent",
        json={"messages": [{"role": "user", "content": "What am I reading?"}]},
        headers=auth_headers(alice),
    )

    assert response.status_code == 200
    assert response.text == "You are reading Dune."
    tool_result = json.loads(fake.messages.calls[1]["messages"][-1]["content"][0]["content"])
    assert tool_result["books"][0]["title"] == "Dune"


async def _seed_library(session, storage):
    alice, bob, carol = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    profiles = ProfileService(session)
    await profiles.upsert_profile(alice, ProfileUpsert(username="alice", display_name="Alice"))
    await profiles.upsert_profile(bob, ProfileUpsert(username="bob", display_name="Bob"))
    await profiles.upsert_profile(carol, ProfileUpsert(username="carol"))

    friendships = FriendshipService(session)
    request = await friendships.send_request(alice, FriendRequestCreate(friend_username="bob"))
    await friendships.respond(request.uuid, bob, "accept")

    document = await DocumentService(session, storage).create_document(
        DocumentCreate(title="Dune", file_url=f"/files/{alice}/dune.pdf", total_pages=200), alice
    )
    await MembershipRepository(session).add(Membership.grant(document.uuid, bob, Role.VIEWER))
    # carol shares the book but is not a friend
    await MembershipRepository(session).add(Membership.grant(document.uuid, carol, Role.VIEWER))

    reading = ReadingProgressService(session)
    await reading.record_page(document.uuid, alice, 50)
    await reading.record_page(document.uuid, bob, 20)
    await reading.record_page(document.uuid, carol, 90)
    await AnnotationService(session).create_annotation(document.uuid, bob, 3, "Great scene", (0.5, 0.5))
    await AnnotationService(session).create_annotation(document.uuid, carol, 4, "Spoiler", (0.5, 0.5))
    return alice, bob, document


@pytest.mark.asyncio
async def test_reading_tools_answer_from_shared_library(tmp_path) -> None:
    await init_db()
    storage = LocalObjectStorage(str(tmp_path / "objects"), "/files")

    async with SessionLocal() as session:
        alice, bob, document = await _seed_library(session, storage)
        tools = ReadingTools(session, alice, storage=storage)

        progress = await tools.execute("get_book_progress", {"book_title": "dune"})
        assert progress["found"] is True
        assert progress["books"][0]["current_page"] == 50
        assert progress["books"][0]["percent_complete"] == 25

        last = await tools.execute("get_last_read_book")
        assert last["title"] == "Dune"

        friends = await tools.execute("get_friends_reading_book", {"book_title": "DUNE"})
        assert [(f["username"], f["current_page"]) for f in friends["friends"]] == [("bob", 20)]

        friend_progress = await tools.execute("get_friend_progress", {"friend_username": "@bob"})
        assert friend_progress["friend"] == "Bob"
        assert friend_progress["progress"][0]["current_page"] == 20

        stranger = await tools.execute("get_friend_progress", {"friend_username": "carol"})
        assert stranger["found"] is False

        listed = await tools.execute("get_user_friends")
        assert listed["friends"] == [{"username": "bob", "display_name": "Bob"}]

        notes = await tools.execute("get_friend_notes", {"limit": 5})
        assert len(notes["notes"]) == 1
        assert notes["notes"][0]["author"] == "Bob"
        assert notes["notes"][0]["page"] == 3

        activity = await tools.execute("get_reading_activity", {"days": 7})
        assert activity["pages_viewed"] == 1
        assert activity["book_titles"] == ["Dune"]

        stats = await tools.execute("get_daily_reading_stats", {"days": 3})
        assert len(stats["data"]) == 3
        assert stats["data"][-1]["pages"] == 1

        missing = await tools.execute("get_book_progress", {"book_title": "Emma"})
        assert missing["found"] is False

        with pytest.raises(LookupError):
            await tools.execute("drop_everything")


@pytest.mark.asyncio
async def test_document_text_tool_reads_pdf_pages(tmp_path) -> None:
    await init_db()
    storage = LocalObjectStorage(str(tmp_path / "objects"), "/files")
    pdf = fitz.open()
    for number in range(3):
        pdf.new_page().insert_text((72, 72), f"Chapter {number + 1}")
    data = pdf.tobytes()
    pdf.close()

    async with SessionLocal() as session:
        alice = uuid.uuid4()
        await ProfileService(session).upsert_profile(alice, ProfileUpsert(username="alice"))
        await DocumentService(session, storage).upload_document(alice, "dune.pdf", "application/pdf", data)
        tools = ReadingTools(session, alice, storage=storage, text_max_chars=1000)

        result = await tools.execute("get_document_text", {"book_title": "dune", "start_page": 2})

    assert result["found"] is True
    assert (result["start_page"], result["end_page"]) == (2, 3)
    assert "[Page 2]" in result["text"]
    assert "Chapter 3" in result["text"]
    assert "Chapter 1" not in result["text"]
    assert result["truncated"] is False


def test_highlight_question_streams_with_passage_context(
    client: TestClient, make_user, make_document, activity_log
) -> None:
    alice = make_user("alice")
    document = make_document(alice, total_pages=10)
    fake = FakeAnthropic([(["It means ", "fear."], "end_turn", [_text("It means fear.")])])
    client.app.dependency_overrides[get_agent_client] = lambda: fake
    passage = "Fear is the mind-killer."

    response = client.post(
        "/highlight-ai",
        json={
            "messages": [{"role": "user", "content": "What does this mean?"}],
            "document_id": document["uuid"],
            "page_number": 4,
            "selected_text": passage,
        },
        headers=auth_headers(alice),
    )

    assert response.status_code == 200
    assert response.text == "It means fear."
    request = fake.messages.calls[0]
    assert "tools" not in request
    assert passage in request["system"]
    assert "page 4" in request["system"]

    async def _highlights():
        async with SessionLocal() as session:
            return await HighlightRepository(session).list_for_user(uuid.UUID(document["uuid"]), alice)

    highlights = client.portal.call(_highlights)
    assert [(h.page_number, h.highlighted_text, h.ai_prompt) for h in highlights] == [
        (4, passage, "What does this mean?")
    ]

    queries = [e for e in activity_log(document) if e.action_type == ActionType.AI_HIGHLIGHT_QUERY]
    assert [e.metadata for e in queries] == [{"page": 4, "text_length": len(passage)}]


def test_highlight_question_requires_membership_and_valid_page(
    client: TestClient, make_user, make_document
) -> None:
    alice = make_user("alice")
    mallory = make_user("mallory")
    document = make_document(alice, total_pages=10)
    client.app.dependency_overrides[get_agent_client] = lambda: FakeAnthropic()
    body = {
        "messages": [{"role": "user", "content": "Explain"}],
        "document_id": document["uuid"],
        "page_number": 2,
        "selected_text": "Arrakis",
    }

    assert client.post("/highlight-ai", json=body, headers=auth_headers(mallory)).status_code == 404
    assert client.post(
        "/highlight-ai", json={**body, "page_number": 11}, headers=auth_headers(alice)
    ).status_code == 400


def test_assistant_chats_are_saved_per_user(client: TestClient, make_user, make_document) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    document = make_document(alice)

    general = client.post("/agent/chats", json={}, headers=auth_headers(alice))
    assert general.status_code == 201
    assert general.json()["title"] == "New Chat"

    bound = client.post(
        "/agent/chats",
        json={"document_id": document["uuid"], "highlighted_text": "Arrakis", "page_number": 2},
        headers=auth_headers(alice),
    ).json()
    assert client.post(
        "/agent/chats", json={"document_id": document["uuid"]}, headers=auth_headers(bob)
    ).status_code == 404

    url = f"/agent/chats/{bound['uuid']}"
    for role, content in (("user", "Where is Arrakis?"), ("assistant", "It is a desert planet.")):
        saved = client.post(f"{url}/messages", json={"role": role, "content": content}, headers=auth_headers(alice))
        assert saved.status_code == 201
    assert client.post(
        f"{url}/messages", json={"role": "system", "content": "x"}, headers=auth_headers(alice)
    ).status_code == 422

    detail = client.get(url, headers=auth_headers(alice)).json()
    assert [(m["role"], m["content"]) for m in detail["messages"]] == [
        ("user", "Where is Arrakis?"),
        ("assistant", "It is a desert planet."),
    ]
    assert detail["highlighted_text"] == "Arrakis"

    listed = client.get("/agent/chats", headers=auth_headers(alice)).json()
    assert [chat["uuid"] for chat in listed] == [bound["uuid"], general.json()["uuid"]]
    scoped = client.get("/agent/chats", params={"document_id": document["uuid"]}, headers=auth_headers(alice))
    assert [chat["uuid"] for chat in scoped.json()] == [bound["uuid"]]

    assert client.get(url, headers=auth_headers(bob)).status_code == 404
    assert client.post(
        f"{url}/messages", json={"role": "user", "content": "mine?"}, headers=auth_headers(bob)
    ).status_code == 404
    assert client.get("/agent/chats", headers=auth_headers(bob)).json() == []

    renamed = client.patch(url, json={"title": "  Arrakis  "}, headers=auth_headers(alice))
    assert renamed.json()["title"] == "Arrakis"

    assert client.delete(url, headers=auth_headers(bob)).status_code == 404
    assert client.delete(url, headers=auth_headers(alice)).status_code == 204
    assert client.get(url, headers=auth_headers(alice)).status_code == 404


def test_chat_title_is_generated_from_first_question(client: TestClient, make_user) -> None:
    alice = make_user("alice")
    chat = client.post("/agent/chats", json={}, headers=auth_headers(alice)).json()
    url = f"/agent/chats/{chat['uuid']}"

    assert client.post(f"{url}/generate-title", headers=auth_headers(alice)).status_code == 503

    fake = FakeAnthropic(title='"Sandworm Biology Basics"')
    client.app.dependency_overrides[get_agent_client] = lambda: fake
    assert client.post(f"{url}/generate-title", headers=auth_headers(alice)).status_code == 400

    client.post(f"{url}/messages", json={"role": "assistant", "content": "Hi!"}, headers=auth_headers(alice))
    client.post(f"{url}/messages", json={"role": "user", "content": "How do sandworms eat?"}, headers=auth_headers(alice))

    titled = client.post(f"{url}/generate-title", headers=auth_headers(alice))
    assert titled.status_code == 200
    assert titled.json()["title"] == "Sandworm Biology Basics"
    assert "How do sandworms eat?" in fake.messages.created[0]["messages"][0]["content"]
    assert fake.messages.created[0]["max_tokens"] == 20


def test_generated_title_is_trimmed() -> None:
    assert clean_title("  'A Very Long Title That Keeps Going And Going Past Fifty'  ") == (
        "A Very Long Title That Keeps Going And Going Past "
    )
    assert clean_title('""') == "New Chat"
