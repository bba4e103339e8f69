"""Tests for the command-line interface."""

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from gametest.cli import main

TESTS_DIR = Path(__file__).parent


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    """Configuration pointing at the sample tests, session saved under tmp_path."""
    path = tmp_path / "gametest.json"
    path.write_text(
        json.dumps(
            {
                "project": {"name": "samples"},
                "discovery": {"modules": ["samples"], "paths": [str(TESTS_DIR)]},
                "logging": {"level": "WARNING"},
                "session": {"enabled": True, "state_file": "state/session.json"},
            }
        )
    )
    return path


class TestInit:
    """Tests for the init command."""

    def test_creates_config(self, runner, tmp_path):
        """Test that init writes a configuration file."""
        output = tmp_path / "gametest.json"
        result = runner.invoke(main, ["init", "--output", str(output), "-m", "game.tests"])

        assert result.exit_code == 0
        assert output.exists()
        assert json.loads(output.read_text())["discovery"]["modules"] == ["game.tests"]

    def test_refuses_overwrite(self, runner, tmp_path):
        """Test that an existing file is kept without --force."""
        output = tmp_path / "gametest.json"
        output.write_text("{}")
        result = runner.invoke(main, ["init", "--output", str(output)])

        assert result.exit_code == 1
        assert output.read_text() == "{}"

    def test_force_overwrite(self, runner, tmp_path):
        """Test that --force replaces an existing file."""
        output = tmp_path / "gametest.json"
        output.write_text("{}")
        result = runner.invoke(main, ["init", "--output", str(output), "--force"])

        assert result.exit_code == 0
        assert "discovery" in json.loads(output.read_text())


class TestList:
    """Tests for the list command."""

    def test_tree(self, runner, config_file):
        """Test that every discovered test is shown."""
        result = runner.invoke(main, ["--config", str(config_file), "list"])

        assert result.exit_code == 0
        assert "movement_continuous" in result.output
        assert "Gravity" in result.output
        assert "8 tests" in result.output

    def test_search(self, runner, config_file):
        """Test that --search filters by path."""
        result = runner.invoke(main, ["--config", str(config_file), "list", "--search", "gravity"])

        assert result.exit_code == 0
        assert "2 of 8 tests" in result.output

    def test_invalid_search(self, runner, config_file):
        """Test that an invalid pattern is reported."""
        result = runner.invoke(main, ["--config", str(config_file), "list", "--search", "("])
        assert result.exit_code == 1

    def test_missing_config(self, runner, tmp_path):
        """Test that a missing configuration file is reported."""
        result = runner.invoke(main, ["--config", str(tmp_path / "missing.json"), "list"])
        assert result.exit_code == 1
        assert "gametest init" in result.output


class TestRun:
    """Tests for the run command."""

    def test_failures_exit_nonzero(self, runner, config_file):
        """Test that a run with failing tests exits with status 1."""
        result = runner.invoke(main, ["--config", str(config_file), "run"])

        assert result.exit_code == 1
        assert "Some tests failed" in result.output
        assert "samples/examples/fails" in result.output

    def test_selected_passing_tests(self, runner, config_file):
        """Test that --select limits the run to matching tests."""
        result = runner.invoke(main, ["--config", str(config_file), "run", "--select", "physics"])

        assert result.exit_code == 0
        assert "All tests passed" in result.output

    def test_no_matches(self, runner, config_file):
        """Test that selecting nothing is an error."""
        result = runner.invoke(main, ["--config", str(config_file), "run", "-k", "nothing_matches_this"])
        assert result.exit_code == 1
        assert "No tests selected" in result.output

    def test_max_ticks(self, runner, config_file):
        """Test that --max-ticks stops a run early."""
        result = runner.invoke(
            main,
            ["--config", str(config_file), "run", "-k", "movement_continuous", "--max-ticks", "2"],
        )

        assert result.exit_code == 0
        assert "Stopping after 2 frames" in result.output

    def test_session_saved(self, runner, config_file):
        """Test that the session is written after a run and reset removes it."""
        state_file = config_file.parent / "state" / "session.json"

        runner.invoke(main, ["--config", str(config_file), "run", "-k", "passes"])
        assert state_file.exists()
        saved = json.loads(state_file.read_text())
        results = {u["path"]: u["result"] for u in saved["units"]}
        assert results["samples/examples/passes"] == "pass"

        result = runner.invoke(main, ["--config", str(config_file), "reset"])
        assert result.exit_code == 0
        assert not state_file.exists()

    def test_session_selection_reused(self, runner, config_file):
        """Test that a later run without --select reuses the saved selection."""
        runner.invoke(main, ["--config", str(config_file), "run", "-k", "physics"])
        result = runner.invoke(main, ["--config", str(config_file), "run"])

        assert result.exit_code == 0
        assert "All tests passed" in result.output


class TestLogging:
    """Tests for log level setup."""

    def test_configured_level(self, runner, config_file):
        """Test that the configured log level reaches the root logger."""
        result = runner.invoke(main, ["--config", str(config_file), "list"])

        assert result.exit_code == 0
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_level(self, runner, config_file):
        """Test that --verbose switches to debug logging."""
        result = runner.invoke(main, ["--config", str(config_file), "--verbose", "list"])

        assert result.exit_code == 0
        assert logging.getLogger().level == logging.DEBUG
