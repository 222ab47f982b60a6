"""Tests for configuration loading."""

from pathlib import Path

import pytest

from memoria.config import (
    ConfigError,
    MemoriaConfig,
    MemoryConfig,
    get_config_path,
    get_database_path,
    get_memoria_home,
    load_config,
)


class TestDefaults:
    def test_memory_defaults(self):
        config = MemoryConfig()

        assert config.extraction_enabled is True
        assert config.default_model == "gpt-3.5-turbo"
        assert config.recent_message_window == 10
        assert config.min_messages == 2
        assert config.dedup_sample_size == 100
        assert config.context_memory_limit == 20
        assert config.context_char_budget == 1200
        assert config.cache_ttl_seconds == 300
        assert config.cleanup_max_age_days == 30
        assert config.cleanup_max_importance == 3
        assert config.cleanup_max_usage == 0
        assert config.extraction_temperature == 0.3
        assert config.extraction_max_tokens == 400

    def test_openai_defaults_do_not_retry(self):
        assert MemoriaConfig().openai.max_retries == 0

    def test_window_must_cover_min_messages(self):
        with pytest.raises(ValueError):
            MemoryConfig(recent_message_window=1, min_messages=2)


class TestPaths:
    def test_memoria_home_from_env(self, tmp_path):
        assert get_memoria_home() == (tmp_path / "memoria-home").resolve()
        assert get_config_path() == get_memoria_home() / "config.toml"
        assert get_database_path() == get_memoria_home() / "data" / "memoria.db"


class TestLoadConfig:
    def test_no_file_gives_defaults(self):
        config = load_config()

        assert config.database.url is None
        assert config.openai.api_key is None
        assert config.memory == MemoryConfig()

    def test_explicit_file(self, config_file):
        config = load_config(config_file)

        assert config.database.url == "sqlite+aiosqlite:///:memory:"
        assert config.openai.timeout == 10.0
        assert config.memory.default_model == "gpt-4o-mini"
        assert config.memory.context_char_budget == 800
        assert config.memory.cache_ttl_seconds == 60

    def test_api_key_is_secret(self, config_file):
        config = load_config(config_file)

        assert "abcdefghij" not in repr(config.openai)
        assert config.openai.api_key.get_secret_value().startswith("sk-file-key")

    def test_finds_config_in_current_directory(self, tmp_path: Path):
        (tmp_path / "config.toml").write_text('[memory]\ndefault_model = "local"\n')
        assert load_config().memory.default_model == "local"

    def test_finds_config_in_memoria_home(self):
        home_config = get_config_path()
        home_config.parent.mkdir(parents=True)
        home_config.write_text('[memory]\ndefault_model = "home"\n')

        assert load_config().memory.default_model == "home"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("not valid toml [[[")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[memory]\ncontext_char_budget = 0\n")

        with pytest.raises(ConfigError):
            load_config(path)


class TestEnvOverrides:
    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env-key")
        monkeypatch.setenv("OPENAI_BASE_URL", "https://llm.internal/v1")

        config = load_config()

        assert config.openai.api_key.get_secret_value() == "sk-env-key"
        assert config.openai.base_url == "https://llm.internal/v1"

    def test_file_api_key_wins(self, monkeypatch, config_file):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env-key")

        config = load_config(config_file)

        assert config.openai.api_key.get_secret_value().startswith("sk-file-key")

    def test_deployment_switches_override_file(self, monkeypatch, config_file):
        monkeypatch.setenv("MEMORIA_DATABASE_URL", "sqlite+aiosqlite:///other.db")
        monkeypatch.setenv("MEMORY_EXTRACTION_ENABLED", "false")
        monkeypatch.setenv("DEFAULT_MEMORY_MODEL", "gpt-4o")

        config = load_config(config_file)

        assert config.database.url == "sqlite+aiosqlite:///other.db"
        assert config.memory.extraction_enabled is False
        assert config.memory.default_model == "gpt-4o"

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_truthy_extraction_switch(self, monkeypatch, value):
        monkeypatch.setenv("MEMORY_EXTRACTION_ENABLED", value)
        assert load_config().memory.extraction_enabled is True

    def test_invalid_extraction_switch(self, monkeypatch):
        monkeypatch.setenv("MEMORY_EXTRACTION_ENABLED", "maybe")

        with pytest.raises(ConfigError, match="MEMORY_EXTRACTION_ENABLED"):
            load_config()
