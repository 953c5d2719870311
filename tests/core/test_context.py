"""Tests for the fetch context."""
from __future__ import annotations

import msgspec
import pytest

from agentquota.core.context import BrowserDetection
from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.core.context import FetchRuntime
from agentquota.core.context import ProviderAccount
from agentquota.core.context import ProviderSettingsSnapshot
from agentquota.core.context import SourceMode
from agentquota.core.context import default_app_context
from agentquota.core.context import default_cli_context
from agentquota.models import ProviderID


class TestSourceMode:
    """Tests for SourceMode."""

    def test_auto_allows_everything(self):
        for kind in FetchKind:
            assert SourceMode.AUTO.allows(kind)

    def test_cli_allows_local_probe(self):
        """The cli mode also covers the local language-server probe."""
        assert SourceMode.CLI.allows(FetchKind.CLI)
        assert SourceMode.CLI.allows(FetchKind.LOCAL_PROBE)
        assert not SourceMode.CLI.allows(FetchKind.OAUTH)

    def test_single_kind_modes(self):
        assert SourceMode.WEB.allowed_kinds == {FetchKind.WEB}
        assert SourceMode.OAUTH.allowed_kinds == {FetchKind.OAUTH}
        assert SourceMode.API.allowed_kinds == {FetchKind.API_TOKEN}


class TestFetchContext:
    """Tests for FetchContext."""

    def test_env_first_non_blank(self, make_context):
        context = make_context(environment={"A": "  ", "B": " value ", "C": "other"})

        assert context.env("A", "B", "C") == "value"
        assert context.env("MISSING") is None

    def test_environment_captured(self, monkeypatch):
        """Later changes to os.environ do not leak into a built context."""
        monkeypatch.setenv("AGENTQUOTA_CONTEXT_TEST", "before")
        context = default_cli_context()
        monkeypatch.setenv("AGENTQUOTA_CONTEXT_TEST", "after")

        assert context.env("AGENTQUOTA_CONTEXT_TEST") == "before"

    def test_frozen(self, fetch_context):
        with pytest.raises(AttributeError):
            fetch_context.source_mode = SourceMode.WEB  # type: ignore[misc]

    def test_with_settings(self, fetch_context):
        settings = ProviderSettingsSnapshot(api_token="tok")

        updated = fetch_context.with_settings(settings)

        assert updated.settings is settings
        assert fetch_context.settings is None
        assert updated.runtime == fetch_context.runtime

    def test_replace_source_mode(self, fetch_context):
        updated = msgspec.structs.replace(fetch_context, source_mode=SourceMode.CLI)
        assert updated.source_mode == SourceMode.CLI
        assert fetch_context.source_mode == SourceMode.AUTO

    def test_account_and_browsers_carried(self):
        """Account and browser detection survive a settings swap."""
        account = ProviderAccount(
            id="acct-1",
            provider_id=ProviderID.CURSOR,
            label="Work",
            email="dev@example.com",
        )
        browsers = BrowserDetection(
            available_browsers=("chrome", "firefox"), default_browser="firefox"
        )
        context = FetchContext(
            runtime=FetchRuntime.CLI,
            environment={},
            account=account,
            browser_detection=browsers,
        )

        updated = context.with_settings(ProviderSettingsSnapshot(api_token="tok"))

        assert context.account is account
        assert context.browser_detection is browsers
        assert updated.account == account
        assert updated.account.provider_id == ProviderID.CURSOR
        assert updated.browser_detection.available_browsers == ("chrome", "firefox")
        assert updated.browser_detection.default_browser == "firefox"

    def test_account_and_browsers_default_to_none(self, fetch_context):
        assert fetch_context.account is None
        assert fetch_context.browser_detection is None


class TestDefaultContexts:
    """Tests for the context constructors."""

    def test_cli(self):
        context = default_cli_context(SourceMode.OAUTH)
        assert context.runtime == FetchRuntime.CLI
        assert context.source_mode == SourceMode.OAUTH
        assert isinstance(context, FetchContext)

    def test_app_has_settings(self):
        context = default_app_context()
        assert context.runtime == FetchRuntime.APP
        assert context.settings == ProviderSettingsSnapshot()
