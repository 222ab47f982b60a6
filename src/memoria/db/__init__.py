"""Database layer."""

from memoria.db.engine import Database
from memoria.db.models import AIModel, Base, Conversation, Memory, Message

__all__ = [
    # Engine
    "Database",
    # Models
    "AIModel",
    "Base",
    "Conversation",
    "Memory",
    "Message",
]
