"""Tests for the sqlkv command line interface."""

import pytest
from typer.testing import CliRunner

from sqlkv.cli.main import app


class TestCLI:
    """Test CLI commands against a temporary project."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def project(self, tmp_path, monkeypatch, runner):
        """Initialized project used as the working directory."""
        for name in ("SQLKV_DATABASE", "SQLKV_TABLE"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("SQLKV_PROJECT_DIR", str(tmp_path))
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == 0
        return tmp_path

    def test_no_command_shows_help(self, runner):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_init(self, project, runner):
        assert (project / ".sqlkv" / "config.toml").exists()

        result = runner.invoke(app, ["init", str(project)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_invalid_table(self, tmp_path, runner):
        result = runner.invoke(app, ["init", str(tmp_path), "--table", "Bad-Name"])
        assert result.exit_code == 1

    def test_requires_project(self, tmp_path, monkeypatch, runner):
        monkeypatch.setenv("SQLKV_PROJECT_DIR", str(tmp_path))
        result = runner.invoke(app, ["get", "k"])
        assert result.exit_code == 1
        assert "sqlkv init" in result.output

    def test_set_get(self, project, runner):
        result = runner.invoke(app, ["set", "greeting", "hello"])
        assert result.exit_code == 0
        assert "OK" in result.output

        result = runner.invoke(app, ["get", "greeting"])
        assert result.exit_code == 0
        assert '"hello"' in result.output

        result = runner.invoke(app, ["set", "user", '{"name": "Alice"}'])
        assert result.exit_code == 0
        result = runner.invoke(app, ["get", "user"])
        assert "Alice" in result.output

        assert (project / "sqlkv.db").exists()

    def test_get_missing(self, project, runner):
        result = runner.invoke(app, ["get", "nope"])
        assert result.exit_code == 0
        assert "(nil)" in result.output

    def test_set_nx(self, project, runner):
        runner.invoke(app, ["set", "k", "1"])
        result = runner.invoke(app, ["set", "k", "2", "--nx"])
        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_keys_and_del(self, project, runner):
        runner.invoke(app, ["set", "user:1", "a"])
        runner.invoke(app, ["set", "user:2", "b"])

        result = runner.invoke(app, ["keys", "user:*"])
        assert "user:1" in result.output
        assert "user:2" in result.output

        result = runner.invoke(app, ["del", "user:1", "user:3"])
        assert "(integer) 1" in result.output

        result = runner.invoke(app, ["keys"])
        assert "user:1" not in result.output

    def test_counters_and_ttl(self, project, runner):
        result = runner.invoke(app, ["incr", "hits"])
        assert "(integer) 1" in result.output
        result = runner.invoke(app, ["incr", "hits", "--by", "5"])
        assert "(integer) 6" in result.output
        result = runner.invoke(app, ["decr", "hits"])
        assert "(integer) 5" in result.output

        result = runner.invoke(app, ["ttl", "hits"])
        assert "(integer) -1" in result.output
        runner.invoke(app, ["expire", "hits", "100"])
        result = runner.invoke(app, ["ttl", "hits"])
        assert "(integer) 100" in result.output

    def test_lists(self, project, runner):
        runner.invoke(app, ["rpush", "queue", "a"])
        result = runner.invoke(app, ["lpush", "queue", "b"])
        assert "(integer) 2" in result.output

        result = runner.invoke(app, ["lrange", "queue"])
        assert result.exit_code == 0
        assert result.output.index('"b"') < result.output.index('"a"')

    def test_hashes(self, project, runner):
        runner.invoke(app, ["hset", "user", "name", "Alice"])
        result = runner.invoke(app, ["hgetall", "user"])
        assert result.exit_code == 0
        assert "name" in result.output
        assert "Alice" in result.output

    def test_table_option(self, project, runner):
        runner.invoke(app, ["set", "k", "main"])
        runner.invoke(app, ["set", "k", "other", "--table", "other"])

        result = runner.invoke(app, ["get", "k"])
        assert '"main"' in result.output
        result = runner.invoke(app, ["get", "k", "--table", "other"])
        assert '"other"' in result.output

    def test_invalid_table_option(self, project, runner):
        result = runner.invoke(app, ["get", "k", "--table", "Bad-Name"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_status(self, project, runner):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "kv_store" in result.output

    def test_version(self, runner):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "sqlkv version" in result.output
