"""Persistent store for conversations, messages, and the knowledge base."""

from padi.store.database import ChatStore
from padi.store.models import Conversation, KnowledgeEntry, Message

__all__ = [
    "ChatStore",
    "Conversation",
    "KnowledgeEntry",
    "Message",
]
