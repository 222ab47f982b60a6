"""Memory manager facade.

The single entry point for memory operations: ownership-checked CRUD,
ranked retrieval, cleanup, extraction, and the cached read path that
compiles memories into prompt context.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from memoria.config.models import MemoryConfig
from memoria.llm.types import ChatMessage, Role
from memoria.memory.budget import build_budgeted_context
from memoria.memory.cache import ContextCache
from memoria.memory.errors import (
    ExtractionConfigError,
    ExtractionError,
    ExtractionTimeoutError,
    InvalidMemoryError,
    MemoryAccessDeniedError,
    MemoryNotFoundError,
)
from memoria.memory.extractor import MemoryExtractor
from memoria.memory.pipeline import ExtractionPipeline
from memoria.memory.types import (
    ExtractionResult,
    MemoryCategory,
    MemoryCreate,
    MemoryEntry,
    MemoryUpdate,
)

if TYPE_CHECKING:
    from memoria.db.engine import Database
    from memoria.llm.base import ChatCompletionClient
    from memoria.store.protocols import MemoryStore, MessageSource, ModelRegistry

logger = logging.getLogger(__name__)


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "memory"
    return f"invalid {field}: {first['msg']}"


class MemoryManager:
    """Orchestrates memory storage, extraction and context building.

    Safe to share across concurrent tasks and threads; the only shared
    in-process state is the context cache, which locks internally.
    """

    def __init__(
        self,
        store: MemoryStore,
        cache: ContextCache | None = None,
        pipeline: ExtractionPipeline | None = None,
        config: MemoryConfig | None = None,
    ):
        """Initialize memory manager.

        Args:
            store: Memory persistence.
            cache: Compiled-context cache; one is created from config if omitted.
            pipeline: Extraction pipeline; None when no AI client is configured.
            config: Memory tuning; defaults apply if omitted.
        """
        self._config = config or MemoryConfig()
        self._store = store
        if cache is None:
            # ContextCache is falsy when empty
            cache = ContextCache(
                ttl_seconds=self._config.cache_ttl_seconds,
                shards=self._config.cache_shards,
                max_entries=self._config.cache_max_entries,
            )
        self._cache = cache
        self._pipeline = pipeline
        self._pending: set[asyncio.Task[ExtractionResult | None]] = set()

    @property
    def cache(self) -> ContextCache:
        return self._cache

    @property
    def config(self) -> MemoryConfig:
        return self._config

    async def get_user_memories(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[MemoryEntry]:
        """Page through a user's memories (no cache, no usage tracking)."""
        return await self._store.list_by_user(user_id, limit, offset)

    async def count_user_memories(self, user_id: str) -> int:
        return await self._store.count_by_user(user_id)

    async def get_relevant_memories(
        self, user_id: str, limit: int
    ) -> list[MemoryEntry]:
        """Get a user's most relevant memories and record that they were used.

        Usage tracking is best-effort: a failed increment is logged and
        does not affect the result.
        """
        memories = await self._store.get_relevant_memories(user_id, limit)
        for memory in memories:
            try:
                await self._store.increment_usage(memory.id)
            except Exception:
                logger.debug(
                    "memory_usage_increment_failed",
                    extra={"memory.id": memory.id},
                    exc_info=True,
                )
        return memories

    async def create_memory(
        self,
        user_id: str,
        content: str,
        category: MemoryCategory | str,
        importance: int,
    ) -> MemoryEntry:
        """Create a memory directly (no source conversation, no dedup).

        Raises:
            InvalidMemoryError: Empty or overlong content, unknown category,
                or importance outside 1..10.
        """
        try:
            data = MemoryCreate(content=content, category=category, importance=importance)
        except ValidationError as e:
            raise InvalidMemoryError(_validation_message(e)) from e

        memory = await self._store.create(
            user_id=user_id,
            content=data.content,
            category=data.category,
            importance=data.importance,
        )
        self._cache.invalidate(user_id)
        logger.info(
            "memory_created",
            extra={"user.id": user_id, "memory.id": memory.id},
        )
        return memory

    async def update_memory(
        self,
        user_id: str,
        memory_id: str,
        content: str | None = None,
        category: MemoryCategory | str | None = None,
        importance: int | None = None,
    ) -> MemoryEntry:
        """Update the supplied fields of a memory the user owns.

        With no fields supplied the memory is returned unchanged.

        Raises:
            MemoryNotFoundError: No such memory.
            MemoryAccessDeniedError: The memory belongs to someone else.
            InvalidMemoryError: A supplied field is invalid.
        """
        fields = {
            name: value
            for name, value in (
                ("content", content),
                ("category", category),
                ("importance", importance),
            )
            if value is not None
        }
        try:
            changes = MemoryUpdate(**fields)
        except ValidationError as e:
            raise InvalidMemoryError(_validation_message(e)) from e

        memory = await self._get_owned(user_id, memory_id)
        if changes.is_empty():
            return memory

        updated = await self._store.update(
            memory_id,
            content=changes.content,
            category=changes.category,
            importance=changes.importance,
        )
        if updated is None:
            # Deleted between the ownership check and the update
            raise MemoryNotFoundError(memory_id)

        self._cache.invalidate(user_id)
        logger.info(
            "memory_updated",
            extra={"user.id": user_id, "memory.id": memory_id},
        )
        return updated

    async def delete_memory(self, user_id: str, memory_id: str) -> None:
        """Delete a memory the user owns.

        Raises:
            MemoryNotFoundError: No such memory.
            MemoryAccessDeniedError: The memory belongs to someone else.
        """
        await self._get_owned(user_id, memory_id)
        if not await self._store.delete(memory_id):
            raise MemoryNotFoundError(memory_id)

        self._cache.invalidate(user_id)
        logger.info(
            "memory_deleted",
            extra={"user.id": user_id, "memory.id": memory_id},
        )

    async def cleanup_old_memories(self, user_id: str) -> int:
        """Delete memories that are old, unimportant, and unused.

        Returns:
            Number of memories deleted.
        """
        deleted = await self._store.delete_low_importance(
            user_id,
            max_age_days=self._config.cleanup_max_age_days,
            max_importance=self._config.cleanup_max_importance,
            max_usage=self._config.cleanup_max_usage,
        )
        if deleted:
            self._cache.invalidate(user_id)
        return deleted

    async def build_memory_context(self, user_id: str) -> str:
        """Compile the user's memories into a prompt-ready string.

        Read-through cached per user. Returns an empty string when there
        is nothing to inject; the header is only added to a non-empty body.
        """
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        memories = await self.get_relevant_memories(
            user_id, self._config.context_memory_limit
        )
        body = build_budgeted_context(memories, self._config.context_char_budget)
        context = f"{self._config.context_header}\n{body}" if body else ""

        self._cache.put(user_id, context)
        return context

    async def get_context_message(self, user_id: str) -> ChatMessage | None:
        """System message carrying the user's memory context.

        Returns None when there is no context or it could not be built;
        prompt construction carries on without memories either way.
        """
        try:
            context = await self.build_memory_context(user_id)
        except Exception:
            logger.warning(
                "memory_context_build_failed",
                extra={"user.id": user_id},
                exc_info=True,
            )
            return None
        if not context:
            return None
        return ChatMessage(role=Role.SYSTEM, content=context)

    async def extract_memories(
        self,
        user_id: str,
        conversation_id: str,
        timeout: float | None = None,
    ) -> ExtractionResult:
        """Extract and store new facts from a conversation.

        Args:
            user_id: Owner of the conversation.
            conversation_id: Conversation to read recent messages from.
            timeout: Deadline in seconds; defaults to the configured
                extraction timeout.

        Raises:
            ExtractionError: The run failed as a whole; facts stored before
                the failure stay stored.
        """
        if not self._config.extraction_enabled:
            return ExtractionResult()
        if self._pipeline is None:
            raise ExtractionConfigError("no chat completion client configured")

        deadline = timeout if timeout is not None else self._config.extraction_timeout_seconds
        try:
            async with asyncio.timeout(deadline):
                return await self._pipeline.run(user_id, conversation_id)
        except TimeoutError as e:
            self._cache.invalidate(user_id)
            raise ExtractionTimeoutError(
                f"memory extraction timed out after {deadline}s"
            ) from e

    def schedule_extraction(
        self, user_id: str, conversation_id: str
    ) -> asyncio.Task[ExtractionResult | None]:
        """Run extraction in the background; failures are logged, not raised."""
        task = asyncio.create_task(
            self._extract_in_background(user_id, conversation_id),
            name=f"memory_extract_{conversation_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_for_pending(self) -> None:
        """Wait for all scheduled extractions to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _extract_in_background(
        self, user_id: str, conversation_id: str
    ) -> ExtractionResult | None:
        try:
            return await self.extract_memories(user_id, conversation_id)
        except ExtractionError as e:
            logger.warning(
                "memory_extraction_failed",
                extra={
                    "user.id": user_id,
                    "conversation.id": conversation_id,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
        except Exception:
            logger.exception(
                "memory_extraction_failed",
                extra={"user.id": user_id, "conversation.id": conversation_id},
            )
        return None

    async def _get_owned(self, user_id: str, memory_id: str) -> MemoryEntry:
        memory = await self._store.get_by_id(memory_id)
        if memory is None:
            raise MemoryNotFoundError(memory_id)
        if memory.user_id != user_id:
            raise MemoryAccessDeniedError()
        return memory


def create_memory_manager(
    db: Database,
    config: MemoryConfig | None = None,
    client: ChatCompletionClient | None = None,
    *,
    store: MemoryStore | None = None,
    messages: MessageSource | None = None,
    models: ModelRegistry | None = None,
    cache: ContextCache | None = None,
) -> MemoryManager:
    """Create a fully-wired MemoryManager.

    Args:
        db: Connected database backing the default SQL stores.
        config: Memory tuning; defaults apply if omitted.
        client: Chat completion backend; extraction is unavailable without one.
        store: Override for the memory store.
        messages: Override for the conversation message source.
        models: Override for the model registry.
        cache: Override for the context cache.

    Returns:
        Configured MemoryManager instance.
    """
    from memoria.store.memories import SQLMemoryStore
    from memoria.store.messages import SQLMessageStore
    from memoria.store.models import SQLModelRegistry

    config = config or MemoryConfig()
    if store is None:
        store = SQLMemoryStore(db)
    if cache is None:
        cache = ContextCache(
            ttl_seconds=config.cache_ttl_seconds,
            shards=config.cache_shards,
            max_entries=config.cache_max_entries,
        )

    pipeline = None
    if client is not None:
        extractor = MemoryExtractor(
            client=client,
            models=models if models is not None else SQLModelRegistry(db),
            default_model=config.default_model,
            strict_model_selection=config.strict_model_selection,
            temperature=config.extraction_temperature,
            max_tokens=config.extraction_max_tokens,
        )
        pipeline = ExtractionPipeline(
            extractor,
            store,
            messages if messages is not None else SQLMessageStore(db),
            cache,
            recent_message_window=config.recent_message_window,
            min_messages=config.min_messages,
            dedup_sample_size=config.dedup_sample_size,
        )

    return MemoryManager(store, cache=cache, pipeline=pipeline, config=config)
