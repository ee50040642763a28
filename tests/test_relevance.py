"""Tests for model-judged relevance scoring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from padi.errors import CompletionError
from padi.knowledge.relevance import build_relevance_prompt, parse_relevance, score_relevance
from padi.llm.client import LLMClient

# -- parse_relevance -----------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("0.85", 0.85),
        ("  0.4\n", 0.4),
        ("1", 1.0),
        ("0", 0.0),
    ],
)
def test_parse_numeric(text: str, expected: float) -> None:
    assert parse_relevance(text) == pytest.approx(expected)


@pytest.mark.parametrize(
    "text",
    ["", "very relevant", "0.8 - quite relevant", "Relevance: 0.9", "nan", "inf"],
)
def test_parse_failure_scores_zero(text: str) -> None:
    assert parse_relevance(text) == 0.0


def test_parse_clamps_out_of_range() -> None:
    assert parse_relevance("7") == 1.0
    assert parse_relevance("-0.5") == 0.0


# -- prompt --------------------------------------------------------------------


def test_prompt_contains_query_and_passage() -> None:
    prompt = build_relevance_prompt("dog's name", "The dog is Biscuit")
    assert prompt.startswith("Query: dog's name")
    assert "Potential relevant information: The dog is Biscuit" in prompt
    assert "only the number" in prompt


# -- score_relevance -----------------------------------------------------------


async def test_score_relevance_uses_relevance_model() -> None:
    llm = MagicMock(spec=LLMClient)
    llm.complete = AsyncMock(return_value=" 0.7 ")

    score = await score_relevance(llm, "q", "passage")

    assert score == pytest.approx(0.7)
    llm.complete.assert_awaited_once()
    assert "model" in llm.complete.call_args.kwargs


async def test_score_relevance_propagates_provider_errors() -> None:
    llm = MagicMock(spec=LLMClient)
    llm.complete = AsyncMock(side_effect=CompletionError("down"))

    with pytest.raises(CompletionError):
        await score_relevance(llm, "q", "passage")
