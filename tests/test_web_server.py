"""Tests for the JSON HTTP API."""

import json
from unittest.mock import AsyncMock, patch

from aiohttp.test_utils import TestClient, TestServer

from padi.store.database import ChatStore
from padi.web.server import create_web_app
from tests.conftest import make_llm

# -- Helpers -----------------------------------------------------------------


async def _make_client(store: ChatStore, llm=None) -> TestClient:
    """Create a TestClient for the API app."""
    app = create_web_app(store, llm or make_llm())
    client = TestClient(TestServer(app))
    await client.start_server()
    return client


def _reply(action: str = "reply", content: str = "Hi!", **extra) -> str:
    return json.dumps({"action": action, "content": content, **extra})


# -- Health ------------------------------------------------------------------


async def test_health_check(store: ChatStore) -> None:
    client = await _make_client(store)
    try:
        resp = await client.get("/health")
        assert resp.status == 200
        assert (await resp.json())["status"] == "ok"
    finally:
        await client.close()


# -- Messages ----------------------------------------------------------------


async def test_post_message_returns_reply(store: ChatStore) -> None:
    conv = await store.create_conversation("chat")
    client = await _make_client(store, make_llm(reply=_reply(content="Hello!")))
    try:
        resp = await client.post(
            f"/api/message?conversation_id={conv.id}", json={"content": "hi"}
        )
        assert resp.status == 200
        data = await resp.json()
        assert data["message"]["content"] == "Hello!"
        assert data["message"]["role"] == "assistant"
        assert data["new_conversation_id"] == conv.id
    finally:
        await client.close()


async def test_post_message_new_conversation_redirects(store: ChatStore) -> None:
    conv = await store.create_conversation("chat")
    llm = make_llm(reply=_reply("new_conversation", "Switching", new_title="Travel"))
    client = await _make_client(store, llm)
    try:
        resp = await client.post(
            f"/api/message?conversation_id={conv.id}", json={"content": "trip ideas?"}
        )
        data = await resp.json()
        assert data["new_conversation_id"] != conv.id
        assert data["message"]["conversation_id"] == data["new_conversation_id"]
    finally:
        await client.close()


async def test_post_message_invalid_conversation_id(store: ChatStore) -> None:
    client = await _make_client(store)
    try:
        resp = await client.post("/api/message?conversation_id=abc", json={"content": "hi"})
        assert resp.status == 400
    finally:
        await client.close()


async def test_post_message_invalid_body(store: ChatStore) -> None:
    conv = await store.create_conversation("chat")
    client = await _make_client(store)
    try:
        resp = await client.post(
            f"/api/message?conversation_id={conv.id}", data="not json"
        )
        assert resp.status == 400
    finally:
        await client.close()


async def test_post_message_accepts_whitespace_only_content(store: ChatStore) -> None:
    conv = await store.create_conversation("chat")
    client = await _make_client(store, make_llm(reply=_reply(content="Still here.")))
    try:
        resp = await client.post(
            f"/api/message?conversation_id={conv.id}", json={"content": "   "}
        )
        assert resp.status == 200
        assert (await resp.json())["message"]["content"] == "Still here."
        history = await store.get_conversation_history(conv.id, 10)
        assert [m.content for m in history] == ["Still here.", "   "]
    finally:
        await client.close()


async def test_post_message_unknown_conversation(store: ChatStore) -> None:
    await store.create_conversation("chat")
    client = await _make_client(store)
    try:
        resp = await client.post("/api/message?conversation_id=999", json={"content": "hi"})
        assert resp.status == 404
    finally:
        await client.close()


async def test_post_message_fatal_error_is_generic_500(store: ChatStore) -> None:
    conv = await store.create_conversation("chat")
    client = await _make_client(store, make_llm(reply=_reply("delete", "bye")))
    try:
        resp = await client.post(
            f"/api/message?conversation_id={conv.id}", json={"content": "hi"}
        )
        assert resp.status == 500
        assert (await resp.json()) == {"error": "failed to process message"}
    finally:
        await client.close()


async def test_get_messages_newest_first(store: ChatStore) -> None:
    conv = await store.create_conversation("chat")
    await store.save_message(conv.id, "user", "first")
    await store.save_message(conv.id, "assistant", "second")
    client = await _make_client(store)
    try:
        resp = await client.get(f"/api/messages?conversation_id={conv.id}")
        assert resp.status == 200
        assert [m["content"] for m in await resp.json()] == ["second", "first"]
    finally:
        await client.close()


# -- Conversations -----------------------------------------------------------


async def test_create_and_list_conversations(store: ChatStore) -> None:
    client = await _make_client(store)
    try:
        resp = await client.post("/api/conversations", json={"title": "Ideas"})
        assert resp.status == 201
        created = await resp.json()
        assert created["title"] == "Ideas"

        resp = await client.get("/api/conversations")
        assert [c["title"] for c in await resp.json()] == ["Ideas"]
    finally:
        await client.close()


async def test_update_conversation(store: ChatStore) -> None:
    conv = await store.create_conversation("old")
    client = await _make_client(store)
    try:
        resp = await client.put(
            f"/api/conversations/update?conversation_id={conv.id}", json={"title": "new"}
        )
        assert resp.status == 200
        fetched = await store.get_conversation(conv.id)
        assert fetched is not None
        assert fetched.title == "new"

        resp = await client.put(
            "/api/conversations/update?conversation_id=999", json={"title": "x"}
        )
        assert resp.status == 404
    finally:
        await client.close()


async def test_delete_conversation(store: ChatStore) -> None:
    conv = await store.create_conversation("bye")
    client = await _make_client(store)
    try:
        resp = await client.delete(f"/api/conversations/delete?conversation_id={conv.id}")
        assert resp.status == 200
        assert await store.get_conversation(conv.id) is None

        resp = await client.delete(f"/api/conversations/delete?conversation_id={conv.id}")
        assert resp.status == 404
    finally:
        await client.close()


# -- Knowledge search --------------------------------------------------------


async def test_knowledge_search_requires_query(store: ChatStore) -> None:
    client = await _make_client(store)
    try:
        resp = await client.get("/api/knowledge/search")
        assert resp.status == 400
    finally:
        await client.close()


async def test_knowledge_search_returns_ranked_results(store: ChatStore) -> None:
    await store.save_knowledge("Information: allergic to peanuts", None)
    await store.save_knowledge("Information: peanuts are cheap at the market", None)
    llm = make_llm(scores={"allergic": "0.9", "cheap": "0.4"})
    client = await _make_client(store, llm)
    try:
        resp = await client.get("/api/knowledge/search", params={"q": "peanuts allergy"})
        assert resp.status == 200
        data = await resp.json()
        assert [r["relevance"] for r in data] == [0.9, 0.4]
        assert data[0]["content"] == "Information: allergic to peanuts"
    finally:
        await client.close()


async def test_knowledge_search_failure_is_500(store: ChatStore) -> None:
    client = await _make_client(store)
    try:
        with patch(
            "padi.web.server.search_knowledge", AsyncMock(side_effect=RuntimeError("x"))
        ):
            resp = await client.get("/api/knowledge/search", params={"q": "anything"})
        assert resp.status == 500
    finally:
        await client.close()
