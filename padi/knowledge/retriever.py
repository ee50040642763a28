"""Two-stage knowledge retrieval: lexical recall, then model-judged precision."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from padi.config import settings
from padi.errors import PadiError, RetrievalError
from padi.knowledge.relevance import score_relevance

if TYPE_CHECKING:
    from padi.llm.client import LLMClient
    from padi.store.database import ChatStore
    from padi.store.models import KnowledgeEntry

logger = logging.getLogger(__name__)

# Candidates must score strictly above this to be returned.
RELEVANCE_THRESHOLD = 0.3


class KnowledgeSearchResult(BaseModel):
    """A knowledge entry scored against one query. Never persisted."""

    content: str
    relevance: float
    created_at: str = ""


async def _score_all(
    llm: LLMClient,
    query: str,
    candidates: list[KnowledgeEntry],
    concurrency: int,
) -> list[float]:
    """Score candidates, returning scores in candidate order.

    With *concurrency* above 1 the calls run in a task group: the first
    failure cancels the remaining calls and is re-raised on its own.
    """
    if concurrency <= 1:
        scores = []
        for entry in candidates:
            scores.append(await score_relevance(llm, query, entry.content))
        return scores

    semaphore = asyncio.Semaphore(concurrency)

    async def _bounded(entry: KnowledgeEntry) -> float:
        async with semaphore:
            return await score_relevance(llm, query, entry.content)

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(_bounded(e)) for e in candidates]
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from None
    return [task.result() for task in tasks]


async def search_knowledge(
    store: ChatStore,
    llm: LLMClient,
    query: str,
    *,
    concurrency: int | None = None,
) -> list[KnowledgeSearchResult]:
    """Return knowledge relevant to *query*, most relevant first.

    Every candidate from the store's lexical search is scored by the model
    (one call each). Candidates scoring ``<= RELEVANCE_THRESHOLD`` are
    dropped and the rest sorted by descending relevance; equal scores keep
    the store's order.

    Args:
        store: Source of lexical candidates.
        llm: Completion provider used for relevance judgments.
        query: Free-text query, passed to the store unchanged.
        concurrency: Max scoring calls in flight. Defaults to
            ``settings.relevance_concurrency``; 1 scores strictly in order.

    Raises:
        RetrievalError: If the lexical search or a scoring call fails.
    """
    try:
        candidates = await store.search_knowledge(query)
    except PadiError as exc:
        msg = f"failed to search knowledge base: {exc}"
        raise RetrievalError(msg) from exc

    if not candidates:
        return []

    limit = concurrency if concurrency is not None else settings.relevance_concurrency
    try:
        scores = await _score_all(llm, query, candidates, limit)
    except PadiError as exc:
        msg = f"failed to evaluate relevance: {exc}"
        raise RetrievalError(msg) from exc

    results = [
        KnowledgeSearchResult(
            content=entry.content,
            relevance=score,
            created_at=entry.created_at,
        )
        for entry, score in zip(candidates, scores, strict=True)
        if score > RELEVANCE_THRESHOLD
    ]
    results.sort(key=lambda r: r.relevance, reverse=True)

    logger.info(
        "Knowledge search: %d candidates, %d above threshold", len(candidates), len(results)
    )
    return results
