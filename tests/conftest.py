"""Shared test fixtures and factories."""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from memoria.config.models import MemoryConfig
from memoria.config.paths import get_memoria_home
from memoria.db.engine import Database
from memoria.llm.base import ChatCompletionClient
from memoria.llm.types import (
    ChatChoice,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Role,
)
from memoria.memory.cache import ContextCache
from memoria.memory.manager import MemoryManager, create_memory_manager
from memoria.memory.types import MemoryCategory, MemoryEntry
from memoria.store.memories import SQLMemoryStore
from memoria.store.messages import SQLMessageStore
from memoria.store.models import SQLModelRegistry
from memoria.store.protocols import ModelInfo

_ENV_OVERRIDES = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "MEMORIA_DATABASE_URL",
    "MEMORY_EXTRACTION_ENABLED",
    "DEFAULT_MEMORY_MODEL",
    "MEMORIA_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from the real home directory and environment."""
    for name in _ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MEMORIA_HOME", str(tmp_path / "memoria-home"))
    monkeypatch.chdir(tmp_path)
    get_memoria_home.cache_clear()
    yield
    get_memoria_home.cache_clear()


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def memory_config() -> MemoryConfig:
    """Default memory configuration."""
    return MemoryConfig()


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[database]
url = "sqlite+aiosqlite:///:memory:"

[openai]
api_key = "sk-file-key-abcdefghijklmnopqrstuvwxyz"
timeout = 10.0

[memory]
default_model = "gpt-4o-mini"
context_char_budget = 800
cache_ttl_seconds = 60
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "memoria.toml"
    config_path.write_text(config_toml_content)
    return config_path


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a temporary test database."""
    db = Database(database_path=tmp_path / "test.db")
    await db.connect()
    await db.create_tables()

    yield db

    await db.disconnect()


@pytest.fixture
def memory_store(database: Database) -> SQLMemoryStore:
    return SQLMemoryStore(database)


@pytest.fixture
def message_store(database: Database) -> SQLMessageStore:
    return SQLMessageStore(database)


@pytest.fixture
def model_registry(database: Database) -> SQLModelRegistry:
    return SQLModelRegistry(database)


@pytest.fixture
async def registered_model(model_registry: SQLModelRegistry) -> ModelInfo:
    """An active model matching the default memory model."""
    return await model_registry.add_model("GPT-3.5 Turbo", "gpt-3.5-turbo")


@pytest.fixture
def add_conversation(
    message_store: SQLMessageStore,
) -> Callable[[str, list[tuple[str, str]]], Awaitable[str]]:
    """Factory that stores a conversation and returns its ID.

    Messages get strictly increasing timestamps in the order given.
    """

    async def _add(user_id: str, messages: list[tuple[str, str]]) -> str:
        conversation_id = await message_store.create_conversation(user_id)
        base = datetime(2026, 1, 1, tzinfo=UTC)
        for offset, (role, content) in enumerate(messages):
            await message_store.add_message(
                conversation_id,
                role,
                content,
                created_at=base + timedelta(seconds=offset),
            )
        return conversation_id

    return _add


# =============================================================================
# Chat Client Fakes
# =============================================================================


def text_response(text: str) -> ChatCompletionResponse:
    """A single-choice assistant response."""
    return ChatCompletionResponse(
        choices=[ChatChoice(message=ChatMessage(role=Role.ASSISTANT, content=text))],
        model="fake-model",
    )


class FakeChatClient(ChatCompletionClient):
    """Scripted chat client.

    Each call consumes the next scripted response: a string becomes the
    assistant text, an exception is raised, and a ChatCompletionResponse is
    returned as is. Once the script runs out, "[]" is returned.
    """

    def __init__(
        self,
        responses: list[str | BaseException | ChatCompletionResponse] | None = None,
        delay: float = 0.0,
    ):
        self.responses = list(responses or [])
        self.delay = delay
        self.requests: list[ChatCompletionRequest] = []
        self.model_ids: list[str | None] = []

    @property
    def name(self) -> str:
        return "fake"

    async def complete(
        self,
        request: ChatCompletionRequest,
        *,
        model_id: str | None = None,
    ) -> ChatCompletionResponse:
        self.requests.append(request)
        self.model_ids.append(model_id)
        if self.delay:
            await asyncio.sleep(self.delay)

        response = self.responses.pop(0) if self.responses else "[]"
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, ChatCompletionResponse):
            return response
        return text_response(response)


@pytest.fixture
def fake_client() -> FakeChatClient:
    return FakeChatClient()


# =============================================================================
# Cache and Manager Fixtures
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context_cache(clock: FakeClock) -> ContextCache:
    return ContextCache(ttl_seconds=300, shards=4, clock=clock)


@pytest.fixture
def memory_manager(
    database: Database,
    memory_config: MemoryConfig,
    fake_client: FakeChatClient,
    context_cache: ContextCache,
    memory_store: SQLMemoryStore,
    message_store: SQLMessageStore,
    model_registry: SQLModelRegistry,
    registered_model: ModelInfo,
) -> MemoryManager:
    """Manager backed by the test database and the scripted client."""
    return create_memory_manager(
        database,
        memory_config,
        fake_client,
        store=memory_store,
        messages=message_store,
        models=model_registry,
        cache=context_cache,
    )


def make_memory(
    content: str,
    category: MemoryCategory = MemoryCategory.FACT,
    importance: int = 5,
    user_id: str = "user-1",
    memory_id: str = "mem-1",
) -> MemoryEntry:
    """Build a MemoryEntry without touching the database."""
    now = datetime(2026, 1, 1, tzinfo=UTC)
    return MemoryEntry(
        id=memory_id,
        user_id=user_id,
        content=content,
        category=category,
        importance=importance,
        created_at=now,
        updated_at=now,
    )


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()
