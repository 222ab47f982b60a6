"""Long-term user memory: extraction, storage and prompt context."""

from memoria.memory.budget import build_budgeted_context
from memoria.memory.cache import ContextCache
from memoria.memory.errors import (
    ExtractionConfigError,
    ExtractionError,
    ExtractionTimeoutError,
    InvalidMemoryError,
    MalformedExtractionError,
    MemoryAccessDeniedError,
    MemoryNotFoundError,
    MemoryServiceError,
    UpstreamAIError,
)
from memoria.memory.extractor import MemoryExtractor, strip_code_fence
from memoria.memory.manager import MemoryManager, create_memory_manager
from memoria.memory.pipeline import ExtractionPipeline
from memoria.memory.similarity import find_similar, is_similar, normalize_fact
from memoria.memory.types import (
    ExtractedFact,
    ExtractionResult,
    MemoryCategory,
    MemoryCreate,
    MemoryEntry,
    MemoryUpdate,
)

__all__ = [
    "ContextCache",
    "ExtractedFact",
    "ExtractionConfigError",
    "ExtractionError",
    "ExtractionPipeline",
    "ExtractionResult",
    "ExtractionTimeoutError",
    "InvalidMemoryError",
    "MalformedExtractionError",
    "MemoryAccessDeniedError",
    "MemoryCategory",
    "MemoryCreate",
    "MemoryEntry",
    "MemoryExtractor",
    "MemoryManager",
    "MemoryNotFoundError",
    "MemoryServiceError",
    "MemoryUpdate",
    "UpstreamAIError",
    "build_budgeted_context",
    "create_memory_manager",
    "find_similar",
    "is_similar",
    "normalize_fact",
    "strip_code_fence",
]
