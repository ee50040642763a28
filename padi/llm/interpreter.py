"""Turn a raw model completion into a structured action.

The model is asked for a JSON object but does not always produce one.
Interpretation is a repair pipeline:

1. Decode the completion as ``ModelReply``.
2. If that fails, treat the whole completion as a plain reply.
3. If ``content`` is itself an encoded object with a ``content`` string,
   use the inner value.
4. Trim whitespace and strip one layer of surrounding quotes.
5. Reject unknown action tags.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from padi.errors import UnknownActionError

logger = logging.getLogger(__name__)

Action = Literal["reply", "store", "search", "new_conversation"]

ACTIONS: frozenset[str] = frozenset({"reply", "store", "search", "new_conversation"})

_QUOTES = ('"', "'")


# -- Wire format -------------------------------------------------------------


def _fold_keys(data: Any) -> Any:
    """Match object keys case-insensitively; an exact lower-case key wins."""
    if not isinstance(data, dict):
        return data
    folded = {key.lower(): value for key, value in data.items()}
    folded.update((key, value) for key, value in data.items() if key == key.lower())
    return folded


class StoreInfo(BaseModel):
    """Facts to store, with an optional context line for each."""

    user_input: list[str] = Field(default_factory=list)
    bot_response: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _case_insensitive_keys(cls, data: Any) -> Any:
        return _fold_keys(data)

    @field_validator("user_input", "bot_response", mode="before")
    @classmethod
    def _null_as_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value


class ModelReply(BaseModel):
    """The JSON object the model is instructed to return."""

    action: str = ""
    content: str = ""
    store_info: StoreInfo = Field(default_factory=StoreInfo)
    new_title: str = ""

    @model_validator(mode="before")
    @classmethod
    def _case_insensitive_keys(cls, data: Any) -> Any:
        return _fold_keys(data)

    @field_validator("action", "content", "new_title", mode="before")
    @classmethod
    def _null_as_empty_string(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("store_info", mode="before")
    @classmethod
    def _null_as_empty_info(cls, value: Any) -> Any:
        return {} if value is None else value


# -- Result ------------------------------------------------------------------


@dataclass
class InterpretedResponse:
    """A validated action ready for dispatch. Lives for one turn."""

    action: Action
    content: str
    store_info: StoreInfo = field(default_factory=StoreInfo)
    new_title: str = ""


# -- Repair steps ------------------------------------------------------------


def _decode_inner_content(content: str) -> str | None:
    """Return the ``content`` string of an encoded object, if it is one."""
    try:
        inner = json.loads(content)
    except json.JSONDecodeError:
        return None
    if isinstance(inner, dict) and isinstance(inner.get("content"), str):
        return inner["content"]
    return None


def _unwrap_content(content: str) -> str:
    """Undo double encoding: ``{"content": "hi"}`` as content becomes ``hi``."""
    if not content.startswith(("{", "[")):
        return content
    inner = _decode_inner_content(content)
    if inner is None:
        return content
    logger.debug("Unwrapped double-encoded content")
    return inner


def _clean_content(content: str) -> str:
    """Trim whitespace and strip exactly one layer of matching quotes."""
    content = content.strip()
    if len(content) >= 2 and content[0] in _QUOTES and content[-1] == content[0]:
        return content[1:-1]
    return content


# -- Entry point -------------------------------------------------------------


def interpret_response(completion: str) -> InterpretedResponse:
    """Interpret a model completion.

    Never fails on malformed output: non-JSON completions become a
    ``reply`` carrying the raw text unchanged.

    Raises:
        UnknownActionError: If the decoded action is not one of ``ACTIONS``.
    """
    try:
        parsed = ModelReply.model_validate_json(completion)
    except ValidationError as exc:
        logger.warning(
            "Model output is not the expected JSON (%d error(s)); using raw text: %.200s",
            exc.error_count(),
            completion,
        )
        return InterpretedResponse(action="reply", content=completion)

    content = _clean_content(_unwrap_content(parsed.content))

    if parsed.action not in ACTIONS:
        raise UnknownActionError(parsed.action)

    return InterpretedResponse(
        action=parsed.action,
        content=content,
        store_info=parsed.store_info,
        new_title=parsed.new_title.strip(),
    )
