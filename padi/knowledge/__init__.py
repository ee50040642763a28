"""Knowledge retrieval: lexical candidates ranked by model-judged relevance."""

from padi.knowledge.relevance import parse_relevance, score_relevance
from padi.knowledge.retriever import (
    RELEVANCE_THRESHOLD,
    KnowledgeSearchResult,
    search_knowledge,
)

__all__ = [
    "RELEVANCE_THRESHOLD",
    "KnowledgeSearchResult",
    "parse_relevance",
    "score_relevance",
    "search_knowledge",
]
