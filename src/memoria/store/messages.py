"""SQLAlchemy-backed conversation history."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from memoria.db.models import Conversation, Message
from memoria.store.mappers import row_to_message
from memoria.store.protocols import ConversationMessage

if TYPE_CHECKING:
    from memoria.db.engine import Database


class SQLMessageStore:
    """Conversations and their messages."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_conversation(
        self, user_id: str, title: str | None = None
    ) -> str:
        """Create a conversation and return its ID."""
        conversation_id = str(uuid.uuid4())
        async with self._db.session() as session:
            session.add(Conversation(id=conversation_id, user_id=user_id, title=title))
        return conversation_id

    async def add_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        created_at: datetime | None = None,
    ) -> ConversationMessage:
        """Append a message to a conversation."""
        row = Message(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=created_at or datetime.now(UTC),
        )
        async with self._db.session() as session:
            session.add(row)
            await session.flush()
            return row_to_message(row)

    async def get_recent_messages(
        self, conversation_id: str, limit: int
    ) -> list[ConversationMessage]:
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            rows = list(result.scalars().all())

        # Newest-first from the query; callers want chronological order
        rows.reverse()
        return [row_to_message(row) for row in rows]
