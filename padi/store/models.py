"""Data models for conversation and knowledge storage."""

from typing import Literal

from pydantic import BaseModel

Role = Literal["user", "assistant", "system"]


class Conversation(BaseModel):
    """A titled thread of messages."""

    id: int
    title: str
    created_at: str


class Message(BaseModel):
    """A single persisted conversation message."""

    id: int
    conversation_id: int
    role: Role
    content: str
    created_at: str


class KnowledgeEntry(BaseModel):
    """A stored fact. Outlives the conversation that produced it."""

    id: int
    content: str
    conversation_id: int | None = None
    created_at: str = ""
