"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr, ValidationError

from memoria.config.models import ConfigError, MemoriaConfig
from memoria.config.paths import get_config_path

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.memoria/config.toml (or MEMORIA_HOME)
    ]


def _section(config: dict[str, Any], key: str) -> dict[str, Any]:
    """Get (or create) a top-level table in the raw config."""
    section = config.get(key)
    if section is None:
        section = {}
        config[key] = section
    return section


def _parse_bool(env_var: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{env_var} must be a boolean, got {value!r}")


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Resolve secrets and deployment overrides from environment variables.

    Secrets only fill in missing values; explicit deployment switches
    (extraction toggle, default model, database URL) always win over the file.
    """
    openai = _section(config, "openai")
    if openai.get("api_key") is None:
        if api_key := os.environ.get("OPENAI_API_KEY"):
            openai["api_key"] = SecretStr(api_key)
    if openai.get("base_url") is None:
        if base_url := os.environ.get("OPENAI_BASE_URL"):
            openai["base_url"] = base_url

    if database_url := os.environ.get("MEMORIA_DATABASE_URL"):
        _section(config, "database")["url"] = database_url

    memory = _section(config, "memory")
    if (enabled := os.environ.get("MEMORY_EXTRACTION_ENABLED")) is not None:
        memory["extraction_enabled"] = _parse_bool("MEMORY_EXTRACTION_ENABLED", enabled)
    if default_model := os.environ.get("DEFAULT_MEMORY_MODEL"):
        memory["default_model"] = default_model

    return config


def load_config(path: Path | None = None) -> MemoriaConfig:
    """Load configuration from a TOML file.

    Unlike a server that must be configured, every setting has a default, so
    a missing file (when no explicit path was given) yields the defaults plus
    environment overrides.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated MemoriaConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ConfigError: If the config file or environment is invalid.
    """
    raw_config: dict[str, Any] = {}

    config_path: Path | None = None
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    raw_config = _apply_env_overrides(raw_config)

    try:
        return MemoriaConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def get_default_config() -> MemoriaConfig:
    """Get a default configuration for development/testing."""
    return MemoriaConfig()
