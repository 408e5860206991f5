"""
Tests for CLI commands.
"""

import pytest
from typer.testing import CliRunner

from allbeads.cli.app import app


runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    """Configuration with one local rig and a cache under tmp_path."""
    rig_dir = tmp_path / "alpha"
    (rig_dir / ".beads").mkdir(parents=True)
    (rig_dir / ".beads" / "issues.jsonl").write_text(
        '{"id": "a1", "title": "First", "status": "open", "priority": 1, '
        '"issue_type": "task", "created_at": "2025-01-01T00:00:00Z", '
        '"updated_at": "2025-01-01T00:00:00Z"}\n',
        encoding="utf-8",
    )
    path = tmp_path / "allbeads.yaml"
    path.write_text(
        f"""
rigs:
  - name: alpha
    path: {rig_dir}
aggregator:
  sync_mode: local_only
cache:
  path: {tmp_path / "cache.db"}
""",
        encoding="utf-8",
    )
    return str(path)


class TestGlobalFlags:
    """Tests for global CLI flags."""

    def test_version_flag(self):
        """Test --version flag shows version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "AllBeads" in result.stdout

    def test_help_flag(self):
        """Test --help flag shows help."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "aggregate" in result.stdout
        assert "sheriff" in result.stdout

    def test_global_options_exist(self):
        result = runner.invoke(app, ["--help"])
        assert "--quiet" in result.stdout
        assert "--debug" in result.stdout
        assert "--config" in result.stdout


class TestConfigCommands:
    """Tests for config subcommands."""

    def test_config_help(self):
        """Test config help shows subcommands."""
        result = runner.invoke(app, ["config", "--help"])
        assert result.exit_code == 0
        assert "show" in result.stdout
        assert "validate" in result.stdout

    def test_config_validate(self, config_path):
        result = runner.invoke(app, ["--config", config_path, "config", "validate"])
        assert result.exit_code == 0
        assert "Configuration is valid!" in result.stdout

    def test_config_validate_reports_problems(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("cache:\n  ttl_seconds: 10\n", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(path), "config", "validate"])
        assert result.exit_code == 1
        assert "at least one rig" in result.stdout

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "config", "show"])
        assert result.exit_code == 2

    def test_config_show(self, config_path):
        result = runner.invoke(app, ["--config", config_path, "config", "show"])
        assert result.exit_code == 0
        assert "alpha" in result.stdout


class TestAggregateCommand:
    """Tests for the aggregate command."""

    def test_aggregate_then_serve_cache(self, config_path):
        first = runner.invoke(app, ["--config", config_path, "aggregate", "--ready"])
        assert first.exit_code == 0
        assert "a1" in first.stdout

        second = runner.invoke(app, ["--config", config_path, "aggregate"])
        assert second.exit_code == 0
        assert "Served from cache" in second.stdout

    def test_unknown_context(self, config_path):
        result = runner.invoke(app, ["--config", config_path, "aggregate", "--context", "nowhere"])
        assert result.exit_code == 2


class TestCacheCommands:
    """Tests for cache subcommands."""

    def test_cache_help(self):
        result = runner.invoke(app, ["cache", "--help"])
        assert result.exit_code == 0
        assert "status" in result.stdout
        assert "clear" in result.stdout

    def test_status_and_clear(self, config_path):
        runner.invoke(app, ["--config", config_path, "aggregate"])

        status = runner.invoke(app, ["--config", config_path, "cache", "status"])
        assert status.exit_code == 0

        cleared = runner.invoke(app, ["--config", config_path, "cache", "clear", "--force"])
        assert cleared.exit_code == 0
        assert "Cleared cache" in cleared.stdout

    def test_clear_cancelled(self, config_path):
        result = runner.invoke(app, ["--config", config_path, "cache", "clear"], input="n\n")
        assert result.exit_code == 0
        assert "Cancelled" in result.stdout


class TestSheriffCommand:
    """Tests for the sheriff command."""

    def test_sheriff_help(self):
        result = runner.invoke(app, ["sheriff", "--help"])
        assert result.exit_code == 0
        assert "--interval" in result.stdout
