"""Centralized path management for Memoria.

All local state (config, database, logs) lives under a single base directory.
The base directory can be overridden with the MEMORIA_HOME environment variable.

Default location: ~/.memoria
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "MEMORIA_HOME"


@lru_cache(maxsize=1)
def get_memoria_home() -> Path:
    """Get the base directory for all Memoria data.

    Resolution order:
    1. MEMORIA_HOME environment variable (if set)
    2. Platform default (~/.memoria)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".memoria"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_memoria_home() / "config.toml"


def get_database_path() -> Path:
    """Get the default SQLite database path."""
    return get_memoria_home() / "data" / "memoria.db"


def get_logs_path() -> Path:
    """Get the directory for JSONL log files."""
    return get_memoria_home() / "logs"
