"""Tests for Codex (OpenAI) provider."""

from datetime import UTC
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import msgspec
import pytest

from agentquota.core.context import FetchKind
from agentquota.errors.fetch import FetchErrorKind
from agentquota.errors.fetch import ProviderFetchError
from agentquota.providers.codex import CodexCLIStrategy
from agentquota.providers.codex import cli as codex_cli
from agentquota.providers.codex.cli import UsageResponse
from agentquota.providers.codex.cli import auth_file
from agentquota.providers.codex.cli import parse_auth
from agentquota.providers.codex.cli import parse_usage_response

USAGE = {
    "plan_type": "plus",
    "rate_limit": {
        "primary_window": {
            "used_percent": 12.5,
            "reset_at": 1737000000,
            "limit_window_seconds": 18000,
        },
        "secondary_window": {
            "used_percent": 40,
            "reset_at": 1737500000,
            "limit_window_seconds": 604800,
        },
    },
    "credits": {"has_credits": True, "unlimited": False, "balance": "3.5"},
}


def usage(data: dict) -> UsageResponse:
    return msgspec.convert(data, type=UsageResponse)


@pytest.fixture
def codex_home(tmp_path, make_context):
    """Context whose CODEX_HOME holds an auth.json with OAuth tokens."""
    (tmp_path / "auth.json").write_text(
        '{"tokens": {"access_token": "tok", "account_id": "acct-1"}}'
    )
    return make_context(environment={"CODEX_HOME": str(tmp_path)})


class TestParseAuth:
    """Tests for parse_auth."""

    def test_tokens(self):
        creds = parse_auth({"tokens": {"access_token": "tok", "account_id": "a"}})
        assert creds.access_token == "tok"
        assert creds.account_id == "a"

    def test_api_key_wins(self):
        creds = parse_auth(
            {"OPENAI_API_KEY": " sk-key ", "tokens": {"access_token": "tok"}}
        )
        assert creds.access_token == "sk-key"
        assert creds.account_id is None

    def test_nothing_usable(self):
        assert parse_auth({}) is None
        assert parse_auth({"tokens": {"access_token": ""}}) is None


class TestAuthFile:
    """Tests for auth_file."""

    def test_codex_home(self, make_context):
        context = make_context(environment={"CODEX_HOME": "/tmp/codex"})
        assert auth_file(context) == Path("/tmp/codex/auth.json")

    def test_default(self, fetch_context):
        assert auth_file(fetch_context) == Path.home() / ".codex" / "auth.json"


class TestParseUsageResponse:
    """Tests for parse_usage_response."""

    def test_rate_limits(self):
        snapshot, credits = parse_usage_response(usage(USAGE))

        assert snapshot.primary.label == "Session"
        assert snapshot.primary.used_percent == 12.5
        assert snapshot.primary.window_minutes == 300
        assert snapshot.primary.resets_at == datetime.fromtimestamp(1737000000, tz=UTC)
        assert snapshot.secondary.label == "Weekly"
        assert snapshot.secondary.window_minutes == 10080
        assert snapshot.identity.plan == "Plus"
        assert credits.remaining_credits == 3.5
        assert snapshot.cost == credits

    def test_unlimited_without_windows(self):
        snapshot, credits = parse_usage_response(
            usage({"credits": {"unlimited": True}})
        )

        assert snapshot.primary.label == "Unlimited"
        assert snapshot.primary.used_percent == 0.0
        assert credits is None

    def test_balance_without_windows(self):
        snapshot, _ = parse_usage_response(usage({"credits": {"balance": 12}}))
        assert snapshot.primary.label == "Credits: $12.00"

    def test_nothing(self):
        snapshot, credits = parse_usage_response(usage({}))

        assert snapshot.primary.label == "Unknown"
        assert snapshot.identity.plan == "Unknown"
        assert credits is None

    def test_bad_balance(self):
        _, credits = parse_usage_response(usage({"credits": {"balance": "n/a"}}))
        assert credits is None


class TestCodexCLIStrategy:
    """Tests for CodexCLIStrategy."""

    def test_identity(self):
        assert CodexCLIStrategy.id == "codex-cli"
        assert CodexCLIStrategy.kind == FetchKind.CLI

    @pytest.mark.asyncio
    async def test_available(self, codex_home):
        assert await CodexCLIStrategy().is_available(codex_home) is True

    @pytest.mark.asyncio
    async def test_unavailable(self, tmp_path, make_context):
        context = make_context(environment={"CODEX_HOME": str(tmp_path)})
        assert await CodexCLIStrategy().is_available(context) is False

    @pytest.mark.asyncio
    async def test_fetch(self, codex_home, http_mock, make_response):
        factory, client = http_mock(get=make_response(200, json=USAGE))

        with patch.object(codex_cli, "get_http_client", factory):
            result = await CodexCLIStrategy().fetch(codex_home)

        assert result.source_label == "oauth"
        assert result.usage.primary.used_percent == 12.5
        assert result.credits.remaining_credits == 3.5
        headers = client.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok"
        assert headers["ChatGPT-Account-Id"] == "acct-1"

    @pytest.mark.asyncio
    async def test_rejected_token(self, codex_home, http_mock, make_response):
        factory, _ = http_mock(get=make_response(401))

        with patch.object(codex_cli, "get_http_client", factory):
            with pytest.raises(ProviderFetchError) as exc_info:
                await CodexCLIStrategy().fetch(codex_home)

        assert exc_info.value.kind == FetchErrorKind.INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_server_error(self, codex_home, http_mock, make_response):
        factory, _ = http_mock(get=make_response(502, content=b"Bad Gateway"))

        with patch.object(codex_cli, "get_http_client", factory):
            with pytest.raises(ProviderFetchError) as exc_info:
                await CodexCLIStrategy().fetch(codex_home)

        assert exc_info.value.kind == FetchErrorKind.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_missing_credentials(self, tmp_path, make_context):
        context = make_context(environment={"CODEX_HOME": str(tmp_path)})

        with pytest.raises(ProviderFetchError) as exc_info:
            await CodexCLIStrategy().fetch(context)

        assert exc_info.value.kind == FetchErrorKind.AUTHENTICATION_REQUIRED

    def test_should_fallback(self, fetch_context):
        strategy = CodexCLIStrategy()

        assert not strategy.should_fallback(
            ProviderFetchError.invalid_credentials(None), fetch_context
        )
        assert strategy.should_fallback(
            ProviderFetchError.network_error("x"), fetch_context
        )
