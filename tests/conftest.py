"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from padi.llm.client import LLMClient
from padi.store.database import ChatStore


@pytest.fixture
def store(tmp_path: Path) -> ChatStore:
    """Create a ChatStore backed by a temp database."""
    return ChatStore(db_path=tmp_path / "test.db")


def make_llm(reply: str = "", scores: dict[str, str] | None = None) -> MagicMock:
    """Build a fake LLMClient.

    Relevance prompts (they start with ``Query:``) are answered from
    *scores*, keyed by a substring of the passage; unmatched passages get
    ``"0"``. Every other prompt gets *reply*.
    """
    scores = scores or {}

    async def _complete(prompt: str, **kwargs) -> str:
        if prompt.startswith("Query:"):
            passage = prompt.split("Potential relevant information:", 1)[1]
            for key, score in scores.items():
                if key in passage:
                    return score
            return "0"
        return reply

    llm = MagicMock(spec=LLMClient)
    llm.complete = AsyncMock(side_effect=_complete)
    return llm
