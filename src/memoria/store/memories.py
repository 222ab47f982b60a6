"""SQLAlchemy-backed memory store."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update

from memoria.db.models import Memory
from memoria.memory.types import MemoryCategory, MemoryEntry
from memoria.store.mappers import row_to_memory

if TYPE_CHECKING:
    from memoria.db.engine import Database

logger = logging.getLogger(__name__)


class SQLMemoryStore:
    """Memory CRUD and ranked retrieval on top of the memories table.

    Each call runs in its own session, so a cancelled caller never leaves a
    transaction open and earlier committed calls stay committed.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create(
        self,
        user_id: str,
        content: str,
        category: MemoryCategory,
        importance: int,
        source_conversation_id: str | None = None,
        source_message_id: str | None = None,
    ) -> MemoryEntry:
        now = datetime.now(UTC)
        row = Memory(
            id=str(uuid.uuid4()),
            user_id=user_id,
            content=content,
            category=MemoryCategory(category).value,
            importance=importance,
            source_conversation_id=source_conversation_id,
            source_message_id=source_message_id,
            times_used=0,
            created_at=now,
            updated_at=now,
        )
        async with self._db.session() as session:
            session.add(row)
            await session.flush()
            return row_to_memory(row)

    async def get_by_id(self, memory_id: str) -> MemoryEntry | None:
        async with self._db.session() as session:
            row = await session.get(Memory, memory_id)
            return row_to_memory(row) if row else None

    async def update(
        self,
        memory_id: str,
        content: str | None = None,
        category: MemoryCategory | None = None,
        importance: int | None = None,
    ) -> MemoryEntry | None:
        async with self._db.session() as session:
            row = await session.get(Memory, memory_id)
            if row is None:
                return None

            if content is not None:
                row.content = content
            if category is not None:
                row.category = MemoryCategory(category).value
            if importance is not None:
                row.importance = importance
            row.updated_at = datetime.now(UTC)

            await session.flush()
            return row_to_memory(row)

    async def delete(self, memory_id: str) -> bool:
        async with self._db.session() as session:
            result = await session.execute(delete(Memory).where(Memory.id == memory_id))
            return (result.rowcount or 0) > 0

    async def list_by_user(
        self, user_id: str, limit: int, offset: int = 0
    ) -> list[MemoryEntry]:
        stmt = (
            select(Memory)
            .where(Memory.user_id == user_id)
            .order_by(
                Memory.importance.desc(),
                Memory.last_used_at.desc().nulls_last(),
                Memory.created_at.desc(),
            )
            .limit(limit)
            .offset(offset)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [row_to_memory(row) for row in result.scalars().all()]

    async def get_relevant_memories(
        self, user_id: str, limit: int
    ) -> list[MemoryEntry]:
        stmt = (
            select(Memory)
            .where(Memory.user_id == user_id)
            .order_by(
                Memory.importance.desc(),
                Memory.times_used.desc(),
                Memory.last_used_at.desc().nulls_last(),
                Memory.created_at.desc(),
            )
            .limit(limit)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [row_to_memory(row) for row in result.scalars().all()]

    async def count_by_user(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Memory).where(Memory.user_id == user_id)
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return result.scalar() or 0

    async def increment_usage(self, memory_id: str) -> None:
        stmt = (
            update(Memory)
            .where(Memory.id == memory_id)
            .values(
                times_used=Memory.times_used + 1,
                last_used_at=datetime.now(UTC),
                # updated_at tracks content edits, not reads
                updated_at=Memory.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._db.session() as session:
            await session.execute(stmt)

    async def delete_low_importance(
        self,
        user_id: str,
        max_age_days: int,
        max_importance: int,
        max_usage: int = 0,
    ) -> int:
        cutoff = datetime.now(UTC) - timedelta(days=max_age_days)
        stmt = delete(Memory).where(
            Memory.user_id == user_id,
            Memory.importance <= max_importance,
            Memory.created_at < cutoff,
            Memory.times_used <= max_usage,
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            deleted = result.rowcount or 0

        if deleted:
            logger.info(
                "memory_cleanup_complete",
                extra={"user.id": user_id, "memory.deleted_count": deleted},
            )
        return deleted
