"""Prompt assembly: instructions, recalled knowledge, and recent history."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from padi.knowledge.retriever import KnowledgeSearchResult
    from padi.store.models import Message

SYSTEM_PROMPT = """\
You are an AI assistant that can:
1. Reply to users (action: "reply")
2. Store important information in a knowledge base (action: "store")
3. Search existing knowledge (action: "search")
4. Create new conversations when topics change significantly (action: "new_conversation")

When storing knowledge:
- Only store specific, important facts or information
- Extract and summarize the key information, don't store entire conversations
- Format the information clearly and concisely

When the user asks about previous information or references past conversations,
use the "reply" action to respond using the conversation history and knowledge provided.
Only use "search" when explicitly asked to search for something.

IMPORTANT: Your response must be a valid JSON object, but the "content" field should contain
your natural language response to the user, not JSON or technical details.

Respond with a JSON object containing:
{
    "action": "reply|store|search|new_conversation",
    "content": "Your natural language response here...",
    "store_info": {
        "user_input": ["The key information to store"],
        "bot_response": ["Confirmation or clarification of the stored info"]
    },
    "new_title": "optional: title for new conversation if action is new_conversation"
}"""

RESPONSE_CUE = "Response:"


def format_knowledge(knowledge: Sequence[KnowledgeSearchResult]) -> str:
    """One ``- content (relevance: 0.00)`` line per result."""
    return "".join(f"- {k.content} (relevance: {k.relevance:.2f})\n" for k in knowledge)


def format_history(history: Sequence[Message]) -> str:
    """Render newest-first *history* as oldest-first ``role: content`` lines."""
    return "".join(f"{m.role}: {m.content}\n" for m in reversed(history))


def build_prompt(
    knowledge: Sequence[KnowledgeSearchResult],
    history: Sequence[Message],
    message: Message,
    *,
    system_prompt: str = SYSTEM_PROMPT,
) -> str:
    """Assemble the single prompt sent for a turn.

    Args:
        knowledge: Ranked knowledge, most relevant first.
        history: Recent messages, newest first, as the store returns them.
        message: The inbound message being answered.
        system_prompt: Instruction block placed at the top.
    """
    return (
        f"{system_prompt}\n\n"
        f"Relevant knowledge from database:\n{format_knowledge(knowledge)}"
        f"\n\nConversation history:\n{format_history(history)}"
        f"\nCurrent message:\n{message.role}: {message.content}\n\n"
        f"{RESPONSE_CUE}"
    )
