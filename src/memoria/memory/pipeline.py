"""Post-turn memory extraction pipeline.

Runs the fetch -> extract -> dedup -> persist sequence for one
conversation. Persistence is per fact: a failed insert is logged and
counted, never rolled back or retried, and earlier inserts stay.

Usage:
    pipeline = ExtractionPipeline(extractor, store, messages, cache)
    result = await pipeline.run(user_id, conversation_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from memoria.memory.similarity import find_similar
from memoria.memory.types import ExtractionResult

if TYPE_CHECKING:
    from memoria.memory.cache import ContextCache
    from memoria.memory.extractor import MemoryExtractor
    from memoria.memory.types import ExtractedFact
    from memoria.store.protocols import ConversationMessage, MemoryStore, MessageSource

logger = logging.getLogger(__name__)


class ExtractionPipeline:
    """Extracts facts from a conversation's recent messages and stores the new ones."""

    def __init__(
        self,
        extractor: MemoryExtractor,
        store: MemoryStore,
        messages: MessageSource,
        cache: ContextCache,
        *,
        recent_message_window: int = 10,
        min_messages: int = 2,
        dedup_sample_size: int = 100,
    ):
        self._extractor = extractor
        self._store = store
        self._messages = messages
        self._cache = cache
        self._window = recent_message_window
        self._min_messages = min_messages
        self._dedup_sample_size = dedup_sample_size

    async def run(self, user_id: str, conversation_id: str) -> ExtractionResult:
        """Run extraction for one conversation.

        Returns an empty result without calling the model when there are
        fewer than min_messages messages.

        Raises:
            ExtractionError: The extraction call itself failed; nothing was
                persisted.
        """
        messages = await self._messages.get_recent_messages(
            conversation_id, self._window
        )
        if len(messages) < self._min_messages:
            logger.debug(
                "memory_extraction_skipped",
                extra={
                    "conversation.id": conversation_id,
                    "conversation.message_count": len(messages),
                },
            )
            return ExtractionResult()

        parsed = await self._extractor.extract(messages)
        result = ExtractionResult(
            extracted=len(parsed.facts),
            dropped_invalid=parsed.dropped_count,
        )
        if parsed.dropped:
            logger.info(
                "memory_extraction_filter_stats",
                extra={
                    "user.id": user_id,
                    "fact.dropped_count": parsed.dropped_count,
                    "fact.drop_reasons": dict(parsed.dropped),
                },
            )

        try:
            if parsed.facts:
                await self._persist(
                    user_id, conversation_id, messages, parsed.facts, result
                )
        finally:
            self._cache.invalidate(user_id)

        logger.info(
            "memory_extraction_complete",
            extra={
                "user.id": user_id,
                "conversation.id": conversation_id,
                "fact.extracted_count": result.extracted,
                "fact.inserted_count": result.inserted,
                "fact.duplicate_count": result.skipped_duplicates,
                "fact.failed_count": result.failed,
            },
        )
        return result

    async def _persist(
        self,
        user_id: str,
        conversation_id: str,
        messages: list[ConversationMessage],
        facts: list[ExtractedFact],
        result: ExtractionResult,
    ) -> None:
        try:
            existing = await self._store.get_relevant_memories(
                user_id, self._dedup_sample_size
            )
        except Exception:
            logger.warning(
                "memory_dedup_fetch_failed",
                extra={"user.id": user_id},
                exc_info=True,
            )
            result.failed += len(facts)
            return

        known = [memory.content for memory in existing]
        source_message_id = messages[-1].id

        for fact in facts:
            match = find_similar(fact.content, known)
            if match is not None:
                logger.debug(
                    "memory_duplicate_skipped",
                    extra={"fact.content": fact.content, "memory.content": match},
                )
                result.skipped_duplicates += 1
                continue

            try:
                await self._store.create(
                    user_id=user_id,
                    content=fact.content,
                    category=fact.category,
                    importance=fact.importance,
                    source_conversation_id=conversation_id,
                    source_message_id=source_message_id,
                )
            except Exception:
                logger.warning(
                    "memory_insert_failed",
                    extra={"user.id": user_id, "fact.content": fact.content},
                    exc_info=True,
                )
                result.failed += 1
                continue

            result.inserted += 1
            # Later facts in the same batch are deduped against this one too
            known.append(fact.content)
