"""
Unit tests for the Typer CLI using CliRunner and the bundled test profile.
"""

from unittest.mock import AsyncMock, patch

import pytest

from typer.testing import CliRunner

from conftest import build_orchestrator
from easy_orchestrator import __version__
from easy_orchestrator.api.cli.main import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_without_backends_fails_with_exit_code_1():
    result = runner.invoke(app, ["--profile", "test", "run", "Create a Q3 sales report", "--json"])

    assert result.exit_code == 1
    assert '"success": false' in result.output
    assert "ConfigurationError" in result.output


def test_run_rejects_invalid_context():
    result = runner.invoke(app, ["--profile", "test", "run", "goal", "--context", "{not json"])

    assert result.exit_code == 2
    assert "Invalid --context JSON" in result.output


def test_run_success(mock_completion_service):
    orchestrator = build_orchestrator(completion_service=mock_completion_service)

    with patch(
        "easy_orchestrator.api.cli.commands.run.OrchestratorFactory.create_orchestrator",
        new=AsyncMock(return_value=orchestrator),
    ):
        result = runner.invoke(app, ["run", "Create a Q3 sales report", "--session", "s1"])

    assert result.exit_code == 0
    assert "Goal completed" in result.output
    assert "5/5 tasks completed" in result.output


def test_status_shows_backends():
    result = runner.invoke(app, ["--profile", "test", "status"])

    assert result.exit_code == 0
    assert "ready" in result.output
    assert "completion" in result.output


def test_agents_lists_both_roles():
    result = runner.invoke(app, ["--profile", "test", "agents"])

    assert result.exit_code == 0
    assert "planner" in result.output
    assert "executor" in result.output


def test_sessions_clear():
    result = runner.invoke(app, ["--profile", "test", "sessions", "clear", "s1"])

    assert result.exit_code == 0
    assert "cleared" in result.output


def test_logging_follows_profile(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    with patch("easy_orchestrator.api.cli.main.configure_logging") as configure:
        result = runner.invoke(app, ["--profile", "prod", "version"])

    assert result.exit_code == 0
    configure.assert_called_once_with("WARNING", True)


def test_log_level_env_overrides_profile(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")

    with patch("easy_orchestrator.api.cli.main.configure_logging") as configure:
        result = runner.invoke(app, ["--profile", "test", "version"])

    assert result.exit_code == 0
    configure.assert_called_once_with("ERROR", False)


def test_verbose_forces_debug_logging():
    with patch("easy_orchestrator.api.cli.main.configure_logging") as configure:
        result = runner.invoke(app, ["--profile", "test", "--verbose", "version"])

    assert result.exit_code == 0
    configure.assert_called_once_with("DEBUG")
