"""JSON HTTP API over the turn pipeline and the store.

Routes:

- ``POST   /api/message?conversation_id=N``  send a message, get the reply
- ``GET    /api/conversations``  list conversations
- ``POST   /api/conversations``  create a conversation
- ``GET    /api/messages?conversation_id=N``  recent messages, newest first
- ``GET    /api/knowledge/search?q=...``  ranked knowledge search
- ``DELETE /api/conversations/delete?conversation_id=N``
- ``PUT    /api/conversations/update?conversation_id=N``
"""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from padi.chat.pipeline import handle_user_message
from padi.config import settings
from padi.knowledge.retriever import search_knowledge
from padi.llm.client import LLMClient
from padi.store.database import ChatStore

logger = logging.getLogger(__name__)

STORE_KEY = web.AppKey("store", ChatStore)
LLM_KEY = web.AppKey("llm", LLMClient)

MESSAGE_PAGE_SIZE = 50


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _conversation_id(request: web.Request) -> int | None:
    """Parse ``?conversation_id=``, or None if missing or not an integer."""
    raw = request.query.get("conversation_id", "")
    try:
        return int(raw)
    except ValueError:
        return None


async def _json_body(request: web.Request) -> dict[str, Any] | None:
    try:
        payload = await request.json()
    except Exception:
        return None
    return payload if isinstance(payload, dict) else None


# -- Handlers ----------------------------------------------------------------


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


async def _handle_message(request: web.Request) -> web.Response:
    """POST /api/message — run one turn for the user's message."""
    conversation_id = _conversation_id(request)
    if conversation_id is None:
        return _error("invalid conversation ID", 400)

    payload = await _json_body(request)
    content = payload.get("content") if payload else None
    if not isinstance(content, str):
        return _error("invalid request body", 400)

    store = request.app[STORE_KEY]
    if await store.get_conversation(conversation_id) is None:
        return _error("conversation not found", 404)

    try:
        result = await handle_user_message(
            store, request.app[LLM_KEY], conversation_id, content
        )
    except Exception:
        logger.exception("Failed to process message (conversation %d)", conversation_id)
        return _error("failed to process message", 500)

    return web.json_response({
        "message": result.message.model_dump(),
        "new_conversation_id": result.message.conversation_id,
    })


async def _list_conversations(request: web.Request) -> web.Response:
    """GET /api/conversations."""
    conversations = await request.app[STORE_KEY].list_conversations()
    return web.json_response([c.model_dump() for c in conversations])


async def _create_conversation(request: web.Request) -> web.Response:
    """POST /api/conversations — body ``{"title": str}``."""
    payload = await _json_body(request)
    if payload is None:
        return _error("invalid request body", 400)
    title = payload.get("title") or settings.default_conversation_title
    if not isinstance(title, str):
        return _error("invalid request body", 400)

    conversation = await request.app[STORE_KEY].create_conversation(title)
    return web.json_response(conversation.model_dump(), status=201)


async def _get_messages(request: web.Request) -> web.Response:
    """GET /api/messages — newest first."""
    conversation_id = _conversation_id(request)
    if conversation_id is None:
        return _error("invalid conversation ID", 400)

    messages = await request.app[STORE_KEY].get_conversation_history(
        conversation_id, MESSAGE_PAGE_SIZE
    )
    return web.json_response([m.model_dump() for m in messages])


async def _search_knowledge(request: web.Request) -> web.Response:
    """GET /api/knowledge/search — ranked, relevance-filtered results."""
    query = request.query.get("q", "")
    if not query.strip():
        return _error("query parameter 'q' is required", 400)

    try:
        results = await search_knowledge(
            request.app[STORE_KEY], request.app[LLM_KEY], query
        )
    except Exception:
        logger.exception("Knowledge search failed: %s", query[:80])
        return _error("knowledge search failed", 500)

    return web.json_response([r.model_dump() for r in results])


async def _delete_conversation(request: web.Request) -> web.Response:
    """DELETE /api/conversations/delete."""
    conversation_id = _conversation_id(request)
    if conversation_id is None:
        return _error("invalid conversation ID", 400)

    deleted = await request.app[STORE_KEY].delete_conversation(conversation_id)
    if not deleted:
        return _error("conversation not found", 404)
    return web.json_response({"ok": True})


async def _update_conversation(request: web.Request) -> web.Response:
    """PUT /api/conversations/update — body ``{"title": str}``."""
    conversation_id = _conversation_id(request)
    if conversation_id is None:
        return _error("invalid conversation ID", 400)

    payload = await _json_body(request)
    title = payload.get("title") if payload else None
    if not isinstance(title, str) or not title.strip():
        return _error("invalid request body", 400)

    updated = await request.app[STORE_KEY].update_conversation_title(
        conversation_id, title
    )
    if not updated:
        return _error("conversation not found", 404)
    return web.json_response({"ok": True})


# -- App ---------------------------------------------------------------------


def create_web_app(store: ChatStore, llm: LLMClient) -> web.Application:
    """Build the aiohttp Application with routes and shared collaborators."""
    app = web.Application()
    app[STORE_KEY] = store
    app[LLM_KEY] = llm

    app.router.add_get("/health", _health)
    app.router.add_post("/api/message", _handle_message)
    app.router.add_get("/api/conversations", _list_conversations)
    app.router.add_post("/api/conversations", _create_conversation)
    app.router.add_get("/api/messages", _get_messages)
    app.router.add_get("/api/knowledge/search", _search_knowledge)
    app.router.add_delete("/api/conversations/delete", _delete_conversation)
    app.router.add_put("/api/conversations/update", _update_conversation)
    return app
