"""Conversation turns: action dispatch and the end-to-end pipeline."""

from padi.chat.dispatcher import TurnResult, dispatch_action, format_knowledge_entry
from padi.chat.pipeline import handle_user_message, process_message

__all__ = [
    "TurnResult",
    "dispatch_action",
    "format_knowledge_entry",
    "handle_user_message",
    "process_message",
]
