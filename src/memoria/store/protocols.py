"""Protocol definitions for the store subsystem.

Defines the interfaces the memory manager depends on. The SQLAlchemy
implementations live beside this module; tests drive the manager with
in-memory fakes that satisfy the same protocols.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from memoria.memory.types import MemoryCategory, MemoryEntry


@dataclass
class ModelInfo:
    """A registered chat model."""

    id: str
    name: str
    model_identifier: str
    is_active: bool = True


@dataclass
class ConversationMessage:
    """A stored conversation message."""

    id: str
    conversation_id: str
    role: str
    content: str
    created_at: datetime


@runtime_checkable
class MemoryStore(Protocol):
    """Durable CRUD and ranked retrieval of memories.

    Everything except get_by_id/update/delete is scoped by user; callers of
    those three must check ownership themselves.
    """

    async def create(
        self,
        user_id: str,
        content: str,
        category: MemoryCategory,
        importance: int,
        source_conversation_id: str | None = None,
        source_message_id: str | None = None,
    ) -> MemoryEntry:
        """Persist a new memory."""
        ...

    async def get_by_id(self, memory_id: str) -> MemoryEntry | None:
        """Get a memory by ID, or None if it does not exist."""
        ...

    async def update(
        self,
        memory_id: str,
        content: str | None = None,
        category: MemoryCategory | None = None,
        importance: int | None = None,
    ) -> MemoryEntry | None:
        """Update the supplied fields; returns None if the memory is gone."""
        ...

    async def delete(self, memory_id: str) -> bool:
        """Delete a memory; returns whether a row was removed."""
        ...

    async def list_by_user(
        self, user_id: str, limit: int, offset: int = 0
    ) -> list[MemoryEntry]:
        """Page through a user's memories."""
        ...

    async def get_relevant_memories(
        self, user_id: str, limit: int
    ) -> list[MemoryEntry]:
        """Return a user's memories, most relevant first."""
        ...

    async def count_by_user(self, user_id: str) -> int:
        """Count a user's memories."""
        ...

    async def increment_usage(self, memory_id: str) -> None:
        """Record that a memory was selected for a context build."""
        ...

    async def delete_low_importance(
        self,
        user_id: str,
        max_age_days: int,
        max_importance: int,
        max_usage: int = 0,
    ) -> int:
        """Delete old, unimportant, unused memories; returns the count."""
        ...


@runtime_checkable
class MessageSource(Protocol):
    """Read access to conversation history."""

    async def get_recent_messages(
        self, conversation_id: str, limit: int
    ) -> list[ConversationMessage]:
        """Return the newest `limit` messages, oldest first."""
        ...


@runtime_checkable
class ModelRegistry(Protocol):
    """Registered chat models."""

    async def list_models(self, active_only: bool = True) -> list[ModelInfo]:
        """List registered models."""
        ...
