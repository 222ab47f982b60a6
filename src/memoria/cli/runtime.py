"""Shared runtime bootstrap helpers for CLI entrypoints."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import typer

from memoria.cli.console import error
from memoria.config import ConfigError, MemoriaConfig, load_config
from memoria.db.engine import Database
from memoria.llm.base import ChatCompletionClient
from memoria.llm.openai import OpenAIChatClient
from memoria.memory.manager import MemoryManager, create_memory_manager
from memoria.store.messages import SQLMessageStore
from memoria.store.models import SQLModelRegistry


@dataclass(slots=True)
class Runtime:
    """Composed dependencies for CLI command handlers."""

    database: Database
    manager: MemoryManager
    messages: SQLMessageStore
    models: SQLModelRegistry


def get_config(config_path: Path | None = None) -> MemoriaConfig:
    """Load configuration, exiting with a readable error on failure."""
    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        error(str(e))
        raise typer.Exit(1) from None
    except ConfigError as e:
        error(f"Invalid configuration: {e}")
        raise typer.Exit(1) from None


async def get_database(config: MemoriaConfig) -> Database:
    """Create and connect the configured database."""
    database = Database(
        database_url=config.database.url,
        database_path=config.database.path,
    )
    await database.connect()
    return database


def create_chat_client(config: MemoriaConfig) -> ChatCompletionClient | None:
    """Create the extraction client, or None when no API key is configured."""
    if config.openai.api_key is None:
        return None
    return OpenAIChatClient(
        api_key=config.openai.api_key.get_secret_value(),
        base_url=config.openai.base_url,
        timeout=config.openai.timeout,
        max_retries=config.openai.max_retries,
    )


@asynccontextmanager
async def bootstrap_runtime(config: MemoriaConfig) -> AsyncIterator[Runtime]:
    """Connect the database and wire a memory manager around it."""
    database = await get_database(config)
    try:
        messages = SQLMessageStore(database)
        models = SQLModelRegistry(database)
        manager = create_memory_manager(
            database,
            config.memory,
            create_chat_client(config),
            messages=messages,
            models=models,
        )
        yield Runtime(
            database=database,
            manager=manager,
            messages=messages,
            models=models,
        )
    finally:
        await database.disconnect()
