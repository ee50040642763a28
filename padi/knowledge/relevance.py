"""Model-judged relevance scoring for knowledge passages."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from padi.config import settings

if TYPE_CHECKING:
    from padi.llm.client import LLMClient

logger = logging.getLogger(__name__)


def build_relevance_prompt(query: str, passage: str) -> str:
    return (
        f"Query: {query}\n\n"
        f"Potential relevant information: {passage}\n\n"
        "Rate the relevance of this information to the query on a scale of 0.0 to 1.0.\n"
        "Respond with only the number."
    )


def parse_relevance(text: str) -> float:
    """Parse a model's relevance judgment.

    Anything that is not a single finite number scores ``0.0``. Parsed
    values are clamped into ``[0.0, 1.0]``.
    """
    try:
        value = float(text.strip())
    except ValueError:
        logger.debug("Unparseable relevance judgment: %r", text[:80])
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return min(max(value, 0.0), 1.0)


async def score_relevance(llm: LLMClient, query: str, passage: str) -> float:
    """Ask the model how relevant *passage* is to *query*.

    Provider errors propagate; only the parse step fails closed.
    """
    completion = await llm.complete(
        build_relevance_prompt(query, passage),
        model=settings.relevance_model,
    )
    return parse_relevance(completion)
