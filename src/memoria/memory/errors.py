"""Memory service exceptions.

Extraction failures are non-fatal to the conversation flow: callers run
extraction best-effort and catch ExtractionError. Ownership and lookup
errors map onto the HTTP layer's 404/403 responses.
"""


class MemoryServiceError(Exception):
    """Base class for all memory service errors."""


class MemoryNotFoundError(MemoryServiceError):
    """The memory does not exist."""

    def __init__(self, memory_id: str):
        super().__init__("memory not found")
        self.memory_id = memory_id


class MemoryAccessDeniedError(MemoryServiceError):
    """The memory exists but belongs to another user.

    The message is uniform and carries nothing about the memory itself.
    """

    def __init__(self) -> None:
        super().__init__("unauthorized")


class InvalidMemoryError(MemoryServiceError, ValueError):
    """Memory fields failed validation."""


class ExtractionError(MemoryServiceError):
    """A memory extraction run failed as a whole."""


class ExtractionConfigError(ExtractionError):
    """No usable model is configured for extraction."""


class UpstreamAIError(ExtractionError):
    """The chat completion call failed or returned nothing usable."""


class MalformedExtractionError(ExtractionError):
    """The model's output could not be parsed as a JSON array of facts."""


class ExtractionTimeoutError(ExtractionError):
    """Extraction exceeded its deadline."""
