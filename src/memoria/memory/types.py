"""Memory data types."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10
MAX_MANUAL_CONTENT_LENGTH = 500


class MemoryCategory(str, Enum):
    """Closed set of memory categories."""

    PREFERENCE = "preference"
    FACT = "fact"
    CONTEXT = "context"


@dataclass
class MemoryEntry:
    """A stored memory as seen by callers of the store and manager."""

    id: str
    user_id: str
    content: str
    category: MemoryCategory
    importance: int
    created_at: datetime
    updated_at: datetime
    source_conversation_id: str | None = None
    source_message_id: str | None = None
    times_used: int = 0
    last_used_at: datetime | None = None

    @property
    def is_manual(self) -> bool:
        """Whether the memory was created directly rather than extracted."""
        return self.source_conversation_id is None


@dataclass
class ExtractionResult:
    """Summary of a single extraction run."""

    extracted: int = 0
    inserted: int = 0
    skipped_duplicates: int = 0
    dropped_invalid: int = 0
    failed: int = 0


# Content coming back from the model is trimmed, and must not be empty
FactContent = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ExtractedFact(BaseModel):
    """Schema for a single fact in the extraction model's JSON output.

    Unknown keys, unknown categories, and out-of-range importance are
    rejected rather than coerced.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    content: FactContent
    category: MemoryCategory
    importance: int = Field(ge=MIN_IMPORTANCE, le=MAX_IMPORTANCE, strict=True)


ManualContent = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, min_length=1, max_length=MAX_MANUAL_CONTENT_LENGTH
    ),
]


class MemoryCreate(BaseModel):
    """Validated input for creating a memory manually."""

    model_config = ConfigDict(extra="forbid")

    content: ManualContent
    category: MemoryCategory
    importance: int = Field(ge=MIN_IMPORTANCE, le=MAX_IMPORTANCE)


class MemoryUpdate(BaseModel):
    """Validated partial update; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    content: ManualContent | None = None
    category: MemoryCategory | None = None
    importance: int | None = Field(default=None, ge=MIN_IMPORTANCE, le=MAX_IMPORTANCE)

    def is_empty(self) -> bool:
        return not self.model_fields_set or all(
            getattr(self, name) is None for name in self.model_fields_set
        )
