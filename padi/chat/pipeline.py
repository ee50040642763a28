"""Turn pipeline: retrieve, assemble, complete, interpret, dispatch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from padi.chat.dispatcher import TurnResult, dispatch_action
from padi.config import settings
from padi.knowledge.retriever import KnowledgeSearchResult, search_knowledge
from padi.llm.interpreter import interpret_response
from padi.llm.prompt import build_prompt

if TYPE_CHECKING:
    from padi.llm.client import LLMClient
    from padi.store.database import ChatStore
    from padi.store.models import Message

logger = logging.getLogger(__name__)


async def _retrieve_knowledge(
    store: ChatStore, llm: LLMClient, query: str
) -> list[KnowledgeSearchResult]:
    """Search the knowledge base, degrading to no knowledge on failure."""
    try:
        return await search_knowledge(store, llm, query)
    except Exception:
        logger.exception("Knowledge retrieval failed; continuing without knowledge")
        return []


async def process_message(
    store: ChatStore,
    llm: LLMClient,
    message: Message,
) -> TurnResult:
    """Answer an already-persisted user message.

    Retrieval failures never abort the turn. Everything after retrieval is
    fatal on failure: fetching history, the completion call (bounded by
    ``settings.completion_timeout``), an unknown action, and persisting the
    reply.

    Note: relevance scoring during retrieval is not bounded by the
    completion timeout, so a slow provider slows the whole turn.
    """
    knowledge = await _retrieve_knowledge(store, llm, message.content)

    history = await store.get_conversation_history(
        message.conversation_id, settings.history_limit
    )

    prompt = build_prompt(knowledge, history, message)
    completion = await llm.complete(prompt, timeout=settings.completion_timeout)

    response = interpret_response(completion)
    return await dispatch_action(store, message, response)


async def handle_user_message(
    store: ChatStore,
    llm: LLMClient,
    conversation_id: int,
    content: str,
) -> TurnResult:
    """Persist an inbound user message and run a turn for it."""
    message = await store.save_message(conversation_id, "user", content)
    logger.info("Message in conversation %d: %s", conversation_id, content[:80])
    return await process_message(store, llm, message)
