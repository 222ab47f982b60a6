"""Mapping between ORM rows and store dataclasses."""

from datetime import UTC, datetime

from memoria.db.models import AIModel, Memory, Message
from memoria.memory.types import MemoryCategory, MemoryEntry
from memoria.store.protocols import ConversationMessage, ModelInfo


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops timezone info)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def row_to_memory(row: Memory) -> MemoryEntry:
    """Convert a Memory row to a MemoryEntry."""
    created_at = as_utc(row.created_at)
    updated_at = as_utc(row.updated_at)
    assert created_at is not None and updated_at is not None
    return MemoryEntry(
        id=row.id,
        user_id=row.user_id,
        content=row.content,
        category=MemoryCategory(row.category),
        importance=row.importance,
        created_at=created_at,
        updated_at=updated_at,
        source_conversation_id=row.source_conversation_id,
        source_message_id=row.source_message_id,
        times_used=row.times_used,
        last_used_at=as_utc(row.last_used_at),
    )


def row_to_message(row: Message) -> ConversationMessage:
    """Convert a Message row to a ConversationMessage."""
    created_at = as_utc(row.created_at)
    assert created_at is not None
    return ConversationMessage(
        id=row.id,
        conversation_id=row.conversation_id,
        role=row.role,
        content=row.content,
        created_at=created_at,
    )


def row_to_model(row: AIModel) -> ModelInfo:
    """Convert an AIModel row to a ModelInfo."""
    return ModelInfo(
        id=row.id,
        name=row.name,
        model_identifier=row.model_identifier,
        is_active=row.is_active,
    )
