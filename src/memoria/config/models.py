"""Configuration models using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, model_validator

from memoria.config.paths import get_database_path


class ConfigError(Exception):
    """Configuration error."""

    pass


class DatabaseConfig(BaseModel):
    """Configuration for the database connection.

    A full SQLAlchemy async URL takes precedence over the SQLite file path.
    """

    url: str | None = None
    path: Path = Field(default_factory=get_database_path)


class OpenAIConfig(BaseModel):
    """Configuration for the OpenAI-compatible chat completion endpoint."""

    api_key: SecretStr | None = None
    base_url: str | None = None
    timeout: float = 30.0
    # Extraction failures are surfaced to the caller, not retried here
    max_retries: int = Field(default=0, ge=0)


class MemoryConfig(BaseModel):
    """Configuration for memory extraction, retrieval and caching."""

    extraction_enabled: bool = True
    default_model: str = "gpt-3.5-turbo"
    # Fail instead of falling back to the first active model
    strict_model_selection: bool = False

    recent_message_window: int = Field(default=10, ge=1)
    min_messages: int = Field(default=2, ge=1)
    dedup_sample_size: int = Field(default=100, ge=1)

    extraction_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    extraction_max_tokens: int = Field(default=400, ge=1)
    extraction_timeout_seconds: float | None = Field(default=60.0, gt=0)

    context_memory_limit: int = Field(default=20, ge=1)
    context_char_budget: int = Field(default=1200, ge=1)
    context_header: str = "Memories about the user:"

    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_shards: int = Field(default=16, ge=1)
    cache_max_entries: int = Field(default=10_000, ge=1)

    cleanup_max_age_days: int = Field(default=30, ge=0)
    cleanup_max_importance: int = Field(default=3, ge=1, le=10)
    cleanup_max_usage: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _validate_window(self) -> "MemoryConfig":
        """A window smaller than the minimum would never extract anything."""
        if self.recent_message_window < self.min_messages:
            raise ValueError(
                "recent_message_window must be >= min_messages "
                f"({self.recent_message_window} < {self.min_messages})"
            )
        return self


class MemoriaConfig(BaseModel):
    """Root configuration model."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
