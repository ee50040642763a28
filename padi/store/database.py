"""ChatStore — aiosqlite persistence for conversations, messages, and knowledge."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite

from padi.config import settings
from padi.errors import StoreError
from padi.store.models import Conversation, KnowledgeEntry, Message

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS conversations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    conversation_id INTEGER NOT NULL
        REFERENCES conversations(id) ON DELETE CASCADE,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_conversation
    ON messages (conversation_id, created_at);

CREATE TABLE IF NOT EXISTS knowledge (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    conversation_id INTEGER
        REFERENCES conversations(id) ON DELETE SET NULL,
    created_at TEXT NOT NULL
);

CREATE VIRTUAL TABLE IF NOT EXISTS knowledge_fts USING fts5(content);

CREATE TRIGGER IF NOT EXISTS knowledge_ai AFTER INSERT ON knowledge BEGIN
    INSERT INTO knowledge_fts (rowid, content) VALUES (new.id, new.content);
END;

CREATE TRIGGER IF NOT EXISTS knowledge_ad AFTER DELETE ON knowledge BEGIN
    DELETE FROM knowledge_fts WHERE rowid = old.id;
END;

CREATE TRIGGER IF NOT EXISTS knowledge_au AFTER UPDATE OF content ON knowledge BEGIN
    DELETE FROM knowledge_fts WHERE rowid = old.id;
    INSERT INTO knowledge_fts (rowid, content) VALUES (new.id, new.content);
END;
"""

_TERM_RE = re.compile(r"\w+")


def _now() -> str:
    return datetime.now(UTC).isoformat()


def build_match_expression(query: str) -> str:
    """Turn free text into an FTS5 expression matching any of its terms.

    Each term is quoted so punctuation and FTS operators in user input
    (``AND``, ``*``, ``:``) are matched literally. Returns an empty string
    when the query has no word characters.
    """
    terms = list(dict.fromkeys(t.lower() for t in _TERM_RE.findall(query)))
    return " OR ".join(f'"{term}"' for term in terms)


class ChatStore:
    """Persists conversations, messages, and knowledge entries in SQLite.

    Pass an explicit *db_path* for test isolation (e.g.
    ``tmp_path / "test.db"``). Every operation opens its own connection, so
    a single instance is safe to share between concurrent turns.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        await db.execute("PRAGMA foreign_keys = ON")
        await db.execute("PRAGMA busy_timeout = 5000")
        if not self._initialised:
            await db.execute("PRAGMA journal_mode = WAL")
            await db.executescript(_SCHEMA)
            await db.commit()
            self._initialised = True
        return db

    @asynccontextmanager
    async def _open(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection, closing it afterwards and wrapping driver errors."""
        try:
            db = await self._connect()
        except aiosqlite.Error as exc:
            msg = f"{operation}: could not open database: {exc}"
            raise StoreError(msg) from exc
        try:
            yield db
        except aiosqlite.Error as exc:
            msg = f"{operation}: {exc}"
            raise StoreError(msg) from exc
        finally:
            await db.close()

    # -- Conversations ---------------------------------------------------------

    async def create_conversation(self, title: str) -> Conversation:
        """Insert a new conversation and return it."""
        created_at = _now()
        async with self._open("create conversation") as db:
            cursor = await db.execute(
                "INSERT INTO conversations (title, created_at) VALUES (?, ?)",
                (title, created_at),
            )
            await db.commit()
            conv = Conversation(id=cursor.lastrowid, title=title, created_at=created_at)
        logger.info("Created conversation %d: %s", conv.id, title)
        return conv

    async def get_conversation(self, conversation_id: int) -> Conversation | None:
        """Fetch a conversation by ID, or None if not found."""
        async with self._open("get conversation") as db:
            cursor = await db.execute(
                "SELECT id, title, created_at FROM conversations WHERE id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()
        if not row:
            return None
        return Conversation(id=row[0], title=row[1], created_at=row[2])

    async def list_conversations(self) -> list[Conversation]:
        """Return all conversations, newest first."""
        async with self._open("list conversations") as db:
            cursor = await db.execute(
                "SELECT id, title, created_at FROM conversations "
                "ORDER BY created_at DESC, id DESC"
            )
            rows = await cursor.fetchall()
        return [Conversation(id=r[0], title=r[1], created_at=r[2]) for r in rows]

    async def update_conversation_title(self, conversation_id: int, title: str) -> bool:
        """Rename a conversation. Returns True if a row was updated."""
        async with self._open("update conversation title") as db:
            cursor = await db.execute(
                "UPDATE conversations SET title = ? WHERE id = ?",
                (title, conversation_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_conversation(self, conversation_id: int) -> bool:
        """Delete a conversation and its messages in one transaction.

        Knowledge entries learned in the conversation are kept and detached
        (their ``conversation_id`` becomes NULL), so facts outlive the
        conversation they were learned in. Earlier releases deleted those
        entries along with the conversation. Returns True if the
        conversation existed.
        """
        async with self._open("delete conversation") as db:
            await db.execute(
                "UPDATE knowledge SET conversation_id = NULL WHERE conversation_id = ?",
                (conversation_id,),
            )
            await db.execute(
                "DELETE FROM messages WHERE conversation_id = ?", (conversation_id,)
            )
            cursor = await db.execute(
                "DELETE FROM conversations WHERE id = ?", (conversation_id,)
            )
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted conversation %d", conversation_id)
        return deleted

    # -- Messages --------------------------------------------------------------

    async def save_message(self, conversation_id: int, role: str, content: str) -> Message:
        """Persist a message, assigning its ID and timestamp."""
        created_at = _now()
        async with self._open("save message") as db:
            cursor = await db.execute(
                """
                INSERT INTO messages (conversation_id, role, content, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (conversation_id, role, content, created_at),
            )
            await db.commit()
            message_id = cursor.lastrowid
        return Message(
            id=message_id,
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=created_at,
        )

    async def get_conversation_history(
        self, conversation_id: int, limit: int
    ) -> list[Message]:
        """Return up to *limit* messages of a conversation, newest first."""
        async with self._open("get conversation history") as db:
            cursor = await db.execute(
                """
                SELECT id, conversation_id, role, content, created_at
                FROM messages
                WHERE conversation_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (conversation_id, limit),
            )
            rows = await cursor.fetchall()
        return [
            Message(
                id=r[0], conversation_id=r[1], role=r[2], content=r[3], created_at=r[4]
            )
            for r in rows
        ]

    # -- Knowledge -------------------------------------------------------------

    async def save_knowledge(
        self, content: str, conversation_id: int | None
    ) -> KnowledgeEntry:
        """Insert a knowledge entry; triggers keep the FTS index in sync."""
        created_at = _now()
        async with self._open("save knowledge") as db:
            cursor = await db.execute(
                """
                INSERT INTO knowledge (content, conversation_id, created_at)
                VALUES (?, ?, ?)
                """,
                (content, conversation_id, created_at),
            )
            await db.commit()
            entry_id = cursor.lastrowid
        logger.info("Saved knowledge entry %d (conversation %s)", entry_id, conversation_id)
        return KnowledgeEntry(
            id=entry_id,
            content=content,
            conversation_id=conversation_id,
            created_at=created_at,
        )

    async def search_knowledge(self, query: str) -> list[KnowledgeEntry]:
        """Lexical search over knowledge entries, newest first.

        Matches entries containing any word of *query*. No relevance score is
        computed here.
        """
        expression = build_match_expression(query)
        if not expression:
            return []

        async with self._open("search knowledge") as db:
            cursor = await db.execute(
                """
                SELECT id, content, conversation_id, created_at
                FROM knowledge
                WHERE id IN (
                    SELECT rowid FROM knowledge_fts WHERE knowledge_fts MATCH ?
                )
                ORDER BY created_at DESC, id DESC
                """,
                (expression,),
            )
            rows = await cursor.fetchall()
        logger.debug("Lexical search %r matched %d entries", expression, len(rows))
        return [
            KnowledgeEntry(id=r[0], content=r[1], conversation_id=r[2], created_at=r[3])
            for r in rows
        ]
