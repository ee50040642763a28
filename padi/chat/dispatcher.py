"""Execute an interpreted action against the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from padi.config import settings
from padi.errors import UnknownActionError

if TYPE_CHECKING:
    from padi.llm.interpreter import InterpretedResponse, StoreInfo
    from padi.store.database import ChatStore
    from padi.store.models import Message

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """The assistant message a turn produced.

    ``new_conversation_id`` is set only when the turn moved the user into a
    freshly created conversation.
    """

    message: Message
    new_conversation_id: int | None = None


def format_knowledge_entry(store_info: StoreInfo) -> str:
    """Render facts and their contexts as a single knowledge-entry body.

    Contexts pair with facts by position; facts past the end of
    ``bot_response`` get no ``Context:`` line.
    """
    lines = ["Knowledge Entry:"]
    contexts = store_info.bot_response
    for i, fact in enumerate(store_info.user_input):
        lines.append(f"Information: {fact}")
        if i < len(contexts):
            lines.append(f"Context: {contexts[i]}")
    return "\n".join(lines) + "\n"


async def _store_knowledge(
    store: ChatStore, store_info: StoreInfo, conversation_id: int
) -> None:
    """Save learned facts. Failures are logged, never raised."""
    body = format_knowledge_entry(store_info)
    try:
        await store.save_knowledge(body, conversation_id)
    except Exception:
        logger.exception(
            "Failed to store knowledge for conversation %d (non-fatal)", conversation_id
        )


async def _reply(store: ChatStore, conversation_id: int, content: str) -> Message:
    return await store.save_message(conversation_id, "assistant", content)


async def dispatch_action(
    store: ChatStore,
    inbound: Message,
    response: InterpretedResponse,
) -> TurnResult:
    """Perform the side effect of *response* and return the reply.

    - ``reply`` / ``search``: persist an assistant reply in the inbound
      conversation.
    - ``store``: save the facts against the inbound conversation, then
      reply as above even if saving failed.
    - ``new_conversation``: create a conversation titled ``new_title`` and
      reply there.

    Raises:
        UnknownActionError: For any other action; nothing is persisted.
        StoreError: If persisting the reply or new conversation fails.
    """
    action = response.action
    conversation_id = inbound.conversation_id

    if action == "store":
        await _store_knowledge(store, response.store_info, conversation_id)
        action = "reply"

    if action in ("reply", "search"):
        message = await _reply(store, conversation_id, response.content)
        logger.info(
            "Turn in conversation %d answered (%s)", conversation_id, response.action
        )
        return TurnResult(message=message)

    if action == "new_conversation":
        title = response.new_title or settings.default_conversation_title
        conversation = await store.create_conversation(title)
        message = await _reply(store, conversation.id, response.content)
        logger.info(
            "Turn in conversation %d moved to new conversation %d",
            conversation_id,
            conversation.id,
        )
        return TurnResult(message=message, new_conversation_id=conversation.id)

    raise UnknownActionError(action)
