"""Persistence for memories, conversation history and the model registry."""

from memoria.store.memories import SQLMemoryStore
from memoria.store.messages import SQLMessageStore
from memoria.store.models import SQLModelRegistry
from memoria.store.protocols import (
    ConversationMessage,
    MemoryStore,
    MessageSource,
    ModelInfo,
    ModelRegistry,
)

__all__ = [
    # Protocols
    "MemoryStore",
    "MessageSource",
    "ModelRegistry",
    # Types
    "ConversationMessage",
    "ModelInfo",
    # SQLAlchemy implementations
    "SQLMemoryStore",
    "SQLMessageStore",
    "SQLModelRegistry",
]
