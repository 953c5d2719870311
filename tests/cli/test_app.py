"""Tests for the agentquota CLI application."""

from __future__ import annotations

import json
import logging
from enum import IntEnum
from unittest.mock import AsyncMock
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from agentquota import __version__
from agentquota.cli.app import ExitCode
from agentquota.cli.app import app
from agentquota.cli.app import configure_logging
from agentquota.cli.commands.catalog import catalog_rows
from agentquota.cli.commands.status import exit_code_for
from agentquota.core.context import FetchKind
from agentquota.core.context import SourceMode
from agentquota.errors.fetch import CommandError
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderID
from agentquota.providers.registry import build_registry
from agentquota.strategies.base import FetchAttempt
from agentquota.strategies.base import FetchOutcome

runner = CliRunner()


def success(sample_result, provider_id=ProviderID.CLAUDE) -> FetchOutcome:
    return FetchOutcome.success(provider_id, sample_result, [])


def failure(error: Exception, provider_id=ProviderID.CLAUDE) -> FetchOutcome:
    attempt = FetchAttempt("claude-oauth", FetchKind.OAUTH, True, error, 3.0)
    return FetchOutcome.failure(provider_id, error, [attempt])


@pytest.fixture
def fake_pipeline():
    """Pipeline stand-in with the real registry and a mocked fetch."""
    pipeline = MagicMock()
    pipeline.registry = build_registry()
    pipeline.fetch = AsyncMock()
    with patch("agentquota.cli.commands.status.build_pipeline", return_value=pipeline):
        yield pipeline


class TestExitCode:
    """Tests for ExitCode enum."""

    def test_exit_code_values(self):
        assert ExitCode.SUCCESS == 0
        assert ExitCode.GENERAL_ERROR == 1
        assert ExitCode.AUTH_ERROR == 2
        assert ExitCode.NETWORK_ERROR == 3
        assert ExitCode.CONFIG_ERROR == 4
        assert ExitCode.PARTIAL_FAILURE == 5

    def test_exit_code_is_int_enum(self):
        assert issubclass(ExitCode, IntEnum)


class TestExitCodeFor:
    """Tests for mapping outcomes to exit codes."""

    def test_all_success(self, sample_result):
        assert exit_code_for({ProviderID.CLAUDE: success(sample_result)}) == 0

    def test_no_outcomes(self):
        assert exit_code_for({}) == ExitCode.SUCCESS

    def test_partial(self, sample_result):
        outcomes = {
            ProviderID.CLAUDE: success(sample_result),
            ProviderID.CODEX: failure(
                ProviderFetchError.invalid_credentials(ProviderID.CODEX),
                ProviderID.CODEX,
            ),
        }
        assert exit_code_for(outcomes) == ExitCode.PARTIAL_FAILURE

    def test_auth_failure(self):
        outcome = failure(ProviderFetchError.authentication_required(ProviderID.CLAUDE))
        assert exit_code_for({ProviderID.CLAUDE: outcome}) == ExitCode.AUTH_ERROR

    def test_network_failure(self):
        outcome = failure(ProviderFetchError.rate_limited(ProviderID.CLAUDE))
        assert exit_code_for({ProviderID.CLAUDE: outcome}) == ExitCode.NETWORK_ERROR

    def test_config_failure(self):
        outcome = failure(CommandError.executable_not_found("claude"))
        assert exit_code_for({ProviderID.CLAUDE: outcome}) == ExitCode.CONFIG_ERROR

    def test_several_failures(self):
        error = ProviderFetchError.invalid_credentials(ProviderID.CLAUDE)
        outcomes = {
            ProviderID.CLAUDE: failure(error),
            ProviderID.CODEX: failure(error, ProviderID.CODEX),
        }
        assert exit_code_for(outcomes) == ExitCode.GENERAL_ERROR


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level(self):
        logger = configure_logging("debug")
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back(self):
        logger = configure_logging("chatty")
        assert logger.level == logging.WARNING

    def test_single_handler(self):
        configure_logging("INFO")
        logger = configure_logging("INFO")
        ours = [h for h in logger.handlers if getattr(h, "_agentquota", False)]
        assert len(ours) == 1


class TestVersion:
    """Tests for --version."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"agentquota {__version__}" in result.output


class TestListCommand:
    """Tests for the list command."""

    def test_catalog_rows(self):
        rows = catalog_rows(build_registry())

        assert [r["id"] for r in rows] == [p.value for p in ProviderID]
        claude = rows[0]
        assert [s["kind"] for s in claude["strategies"]] == ["oauth", "cli", "web"]
        copilot = next(r for r in rows if r["id"] == "copilot")
        assert copilot["aliases"] == ["github"]

    def test_list_table(self, temp_config_dir):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "antigravity-local" in result.output

    def test_list_json(self, temp_config_dir):
        result = runner.invoke(app, ["list", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data["providers"]) == len(ProviderID)


class TestStatusCommand:
    """Tests for the status command."""

    def test_single_provider_json(self, temp_config_dir, fake_pipeline, sample_result):
        fake_pipeline.fetch.return_value = success(sample_result)

        result = runner.invoke(app, ["status", "claude", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["provider"] == "claude"
        assert data["source"] == "oauth"
        context, provider_id = fake_pipeline.fetch.await_args.args
        assert provider_id == ProviderID.CLAUDE
        assert context.source_mode == SourceMode.AUTO

    def test_alias_and_source(self, temp_config_dir, fake_pipeline, sample_result):
        fake_pipeline.fetch.return_value = success(sample_result, ProviderID.COPILOT)

        result = runner.invoke(app, ["status", "GitHub", "--source", "cli"])

        assert result.exit_code == 0
        context, provider_id = fake_pipeline.fetch.await_args.args
        assert provider_id == ProviderID.COPILOT
        assert context.source_mode == SourceMode.CLI

    def test_unknown_provider(self, temp_config_dir, fake_pipeline):
        result = runner.invoke(app, ["status", "chatgpt"])

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "Unknown provider" in result.output
        fake_pipeline.fetch.assert_not_awaited()

    def test_failure_exit_code(self, temp_config_dir, fake_pipeline):
        fake_pipeline.fetch.return_value = failure(
            ProviderFetchError.invalid_credentials(ProviderID.CLAUDE)
        )

        result = runner.invoke(app, ["status", "claude"])

        assert result.exit_code == ExitCode.AUTH_ERROR
        assert "Claude Error" in result.output

    def test_all_providers(self, temp_config_dir, fake_pipeline, sample_result):
        outcomes = {
            ProviderID.CLAUDE: success(sample_result),
            ProviderID.CODEX: failure(
                ProviderFetchError.network_error("boom", ProviderID.CODEX),
                ProviderID.CODEX,
            ),
        }
        fetch_all = AsyncMock(return_value=outcomes)
        with patch("agentquota.cli.commands.status.fetch_enabled_providers", fetch_all):
            result = runner.invoke(app, ["status", "--json"])

        assert result.exit_code == ExitCode.PARTIAL_FAILURE
        data = json.loads(result.output)
        assert set(data["providers"]) == {"claude", "codex"}
        assert data["providers"]["codex"]["error"]["category"] == "network"

    def test_nothing_enabled(self, temp_config_dir, fake_pipeline):
        with patch(
            "agentquota.cli.commands.status.fetch_enabled_providers",
            AsyncMock(return_value={}),
        ):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "No providers enabled" in result.output
