"""CLI command modules."""

from memoria.cli.commands import database, memory, models

__all__ = [
    "database",
    "memory",
    "models",
]
