"""Tests for CLI commands."""

import re

import pytest

from memoria.cli.app import app
from memoria.cli.console import console


@pytest.fixture(autouse=True)
def cli_environment(tmp_path, monkeypatch):
    """Point the CLI at a throwaway database and keep root logging untouched."""
    monkeypatch.setenv(
        "MEMORIA_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    )
    monkeypatch.setattr("memoria.cli.app.configure_logging", lambda **kwargs: None)
    # Wide enough that table cells never wrap
    monkeypatch.setattr(console, "width", 200)


@pytest.fixture
def initialized(cli_runner):
    result = cli_runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0, result.stdout


def _added_id(output: str) -> str:
    match = re.search(r"Added memory: (\S+)", output)
    assert match, output
    return match.group(1)


class TestLoggingOptions:
    def test_log_file_enables_jsonl_logging(self, cli_runner, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "memoria.cli.app.configure_logging", lambda **kwargs: calls.append(kwargs)
        )

        result = cli_runner.invoke(app, ["--log-file", "db", "init"])

        assert result.exit_code == 0, result.stdout
        assert calls == [{"level": "WARNING", "use_rich": True, "log_to_file": True}]

    def test_defaults(self, cli_runner, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "memoria.cli.app.configure_logging", lambda **kwargs: calls.append(kwargs)
        )

        cli_runner.invoke(app, ["db", "init"])

        assert calls[0]["log_to_file"] is False


class TestDatabaseCommand:
    def test_init(self, cli_runner):
        result = cli_runner.invoke(app, ["db", "init"])
        assert result.exit_code == 0
        assert "created" in result.stdout

    def test_init_missing_config(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["db", "init", "--config", str(tmp_path / "missing.toml")]
        )
        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestModelsCommand:
    def test_add_and_list(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["models", "add", "GPT-3.5", "gpt-3.5-turbo"])
        assert result.exit_code == 0
        assert "Registered model" in result.stdout

        result = cli_runner.invoke(app, ["models", "list"])
        assert result.exit_code == 0
        assert "gpt-3.5-turbo" in result.stdout

    def test_duplicate_name(self, cli_runner, initialized):
        cli_runner.invoke(app, ["models", "add", "GPT", "gpt-3.5-turbo"])
        result = cli_runner.invoke(app, ["models", "add", "GPT", "gpt-4o"])
        assert result.exit_code == 1
        assert "already registered" in result.stdout

    def test_list_empty(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["models", "list"])
        assert result.exit_code == 0
        assert "No models" in result.stdout


class TestMemoryCommand:
    def test_add_and_list(self, cli_runner, initialized):
        result = cli_runner.invoke(
            app,
            ["memory", "add", "Likes tea", "--user", "u1", "--category", "preference"],
        )
        assert result.exit_code == 0
        _added_id(result.stdout)

        result = cli_runner.invoke(app, ["memory", "list", "--user", "u1"])
        assert result.exit_code == 0
        assert "Likes tea" in result.stdout

        result = cli_runner.invoke(app, ["memory", "list", "--user", "u2"])
        assert "No memories" in result.stdout

    def test_add_rejects_invalid_importance(self, cli_runner, initialized):
        result = cli_runner.invoke(
            app, ["memory", "add", "Likes tea", "--user", "u1", "--importance", "11"]
        )
        assert result.exit_code == 1
        assert "importance" in result.stdout

    def test_add_rejects_unknown_category(self, cli_runner, initialized):
        result = cli_runner.invoke(
            app, ["memory", "add", "Likes tea", "--user", "u1", "--category", "hobby"]
        )
        assert result.exit_code != 0

    def test_update(self, cli_runner, initialized):
        added = cli_runner.invoke(app, ["memory", "add", "Likes tea", "--user", "u1"])
        memory_id = _added_id(added.stdout)

        result = cli_runner.invoke(
            app,
            ["memory", "update", memory_id, "--user", "u1", "--content", "Likes coffee"],
        )
        assert result.exit_code == 0

        result = cli_runner.invoke(app, ["memory", "context", "--user", "u1"])
        assert "Likes coffee" in result.stdout

    def test_update_requires_a_field(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["memory", "update", "abc", "--user", "u1"])
        assert result.exit_code == 1
        assert "Nothing to update" in result.stdout

    def test_remove_other_users_memory(self, cli_runner, initialized):
        added = cli_runner.invoke(app, ["memory", "add", "Likes tea", "--user", "u1"])
        memory_id = _added_id(added.stdout)

        result = cli_runner.invoke(
            app, ["memory", "remove", memory_id, "--user", "u2", "--force"]
        )
        assert result.exit_code == 1
        assert "Unauthorized" in result.stdout

        result = cli_runner.invoke(
            app, ["memory", "remove", memory_id, "--user", "u1", "--force"]
        )
        assert result.exit_code == 0

    def test_remove_missing(self, cli_runner, initialized):
        result = cli_runner.invoke(
            app, ["memory", "remove", "missing", "--user", "u1", "--force"]
        )
        assert result.exit_code == 1
        assert "Memory not found" in result.stdout

    def test_context(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["memory", "context", "--user", "u1"])
        assert result.exit_code == 0
        assert "No memory context" in result.stdout

        cli_runner.invoke(app, ["memory", "add", "Lives in Berlin", "--user", "u1"])
        result = cli_runner.invoke(app, ["memory", "context", "--user", "u1"])
        assert "Memories about the user:" in result.stdout
        assert "- [fact] Lives in Berlin" in result.stdout

    def test_cleanup(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["memory", "cleanup", "--user", "u1"])
        assert result.exit_code == 0
        assert "No stale memories" in result.stdout

    def test_extract_without_api_key(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["memory", "extract", "conv-1", "--user", "u1"])
        assert result.exit_code == 1
        assert "Extraction failed" in result.stdout
