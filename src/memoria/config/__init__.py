"""Configuration module."""

from memoria.config.loader import get_default_config, load_config
from memoria.config.models import (
    ConfigError,
    DatabaseConfig,
    MemoriaConfig,
    MemoryConfig,
    OpenAIConfig,
)
from memoria.config.paths import (
    get_config_path,
    get_database_path,
    get_logs_path,
    get_memoria_home,
)

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "MemoriaConfig",
    "MemoryConfig",
    "OpenAIConfig",
    "get_config_path",
    "get_database_path",
    "get_default_config",
    "get_logs_path",
    "get_memoria_home",
    "load_config",
]
