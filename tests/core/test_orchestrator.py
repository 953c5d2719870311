"""Tests for multi-provider orchestration."""
from __future__ import annotations

import asyncio

import pytest

from agentquota.config.settings import Config
from agentquota.config.settings import ProviderConfig
from agentquota.core.context import CookieSourceMode
from agentquota.core.context import FetchKind
from agentquota.core.context import SourceMode
from agentquota.core.orchestrator import categorize_results
from agentquota.core.orchestrator import fetch_all
from agentquota.core.orchestrator import fetch_enabled_providers
from agentquota.core.orchestrator import provider_context
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderID
from agentquota.models import UsageSnapshot
from agentquota.strategies.base import FetchOutcome
from agentquota.strategies.base import FetchResult


class RecordingPipeline:
    """Pipeline stand-in that records contexts and concurrency."""

    def __init__(self, registry=(), fail=()):
        self.registry = list(registry)
        self.fail = set(fail)
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, context, provider_id):
        self.calls.append((provider_id, context))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        if provider_id in self.fail:
            return FetchOutcome.failure(
                provider_id, ProviderFetchError.no_available_strategy(provider_id), []
            )
        result = FetchResult(
            usage=UsageSnapshot(provider_id=provider_id),
            source_label="stub",
            strategy_id="stub",
            strategy_kind=FetchKind.CLI,
        )
        return FetchOutcome.success(provider_id, result, [])


class TestFetchAll:
    """Tests for fetch_all."""

    @pytest.mark.asyncio
    async def test_returns_in_request_order(self, fetch_context):
        pipeline = RecordingPipeline()
        ids = [ProviderID.GEMINI, ProviderID.CLAUDE, ProviderID.CODEX]

        outcomes = await fetch_all(pipeline, fetch_context, ids)

        assert list(outcomes) == ids

    @pytest.mark.asyncio
    async def test_deduplicates(self, fetch_context):
        pipeline = RecordingPipeline()

        outcomes = await fetch_all(
            pipeline, fetch_context, [ProviderID.CLAUDE, ProviderID.CLAUDE]
        )

        assert list(outcomes) == [ProviderID.CLAUDE]
        assert len(pipeline.calls) == 1

    @pytest.mark.asyncio
    async def test_respects_max_concurrent(self, fetch_context):
        """No more than max_concurrent fetches run at once."""
        pipeline = RecordingPipeline()

        await fetch_all(pipeline, fetch_context, list(ProviderID), max_concurrent=2)

        assert pipeline.max_in_flight <= 2
        assert len(pipeline.calls) == len(ProviderID)

    @pytest.mark.asyncio
    async def test_context_factory(self, make_context):
        """A factory builds one context per provider."""
        pipeline = RecordingPipeline()
        contexts = {
            ProviderID.CLAUDE: make_context(source_mode=SourceMode.OAUTH),
            ProviderID.CODEX: make_context(source_mode=SourceMode.CLI),
        }

        await fetch_all(pipeline, contexts.__getitem__, list(contexts))

        seen = dict(pipeline.calls)
        assert seen[ProviderID.CLAUDE].source_mode == SourceMode.OAUTH
        assert seen[ProviderID.CODEX].source_mode == SourceMode.CLI

    @pytest.mark.asyncio
    async def test_on_complete_called(self, fetch_context):
        pipeline = RecordingPipeline()
        completed = []

        await fetch_all(
            pipeline,
            fetch_context,
            [ProviderID.CLAUDE, ProviderID.CURSOR],
            on_complete=completed.append,
        )

        assert {o.provider_id for o in completed} == {
            ProviderID.CLAUDE,
            ProviderID.CURSOR,
        }


class TestProviderContext:
    """Tests for provider_context."""

    def test_applies_settings(self, fetch_context):
        config = Config(
            providers={
                "cursor": ProviderConfig(
                    cookie_source=CookieSourceMode.MANUAL, cookie_header="a=b"
                )
            }
        )

        context = provider_context(config, fetch_context, ProviderID.CURSOR)

        assert context.settings.cookie_source == CookieSourceMode.MANUAL
        assert context.settings.manual_cookie_header == "a=b"

    def test_configured_source_used_under_auto(self, fetch_context):
        config = Config(providers={"claude": ProviderConfig(source=SourceMode.WEB)})

        context = provider_context(config, fetch_context, ProviderID.CLAUDE)

        assert context.source_mode == SourceMode.WEB

    def test_explicit_source_wins(self, make_context):
        """A non-auto caller source is never overridden."""
        config = Config(providers={"claude": ProviderConfig(source=SourceMode.WEB)})
        base = make_context(source_mode=SourceMode.OAUTH)

        context = provider_context(config, base, ProviderID.CLAUDE)

        assert context.source_mode == SourceMode.OAUTH

    def test_environment_preserved(self, make_context):
        base = make_context(environment={"X": "1"})

        context = provider_context(Config(), base, ProviderID.GEMINI)

        assert context.environment == {"X": "1"}


class TestFetchEnabledProviders:
    """Tests for fetch_enabled_providers."""

    @pytest.mark.asyncio
    async def test_only_enabled(self, fetch_context):
        pipeline = RecordingPipeline(registry=list(ProviderID))
        config = Config(
            enabled_providers=["claude", "cursor"],
            providers={"cursor": ProviderConfig(enabled=False)},
        )

        outcomes = await fetch_enabled_providers(pipeline, fetch_context, config)

        assert list(outcomes) == [ProviderID.CLAUDE]

    @pytest.mark.asyncio
    async def test_all_enabled_by_default(self, fetch_context):
        pipeline = RecordingPipeline(registry=[ProviderID.CLAUDE, ProviderID.CODEX])

        outcomes = await fetch_enabled_providers(pipeline, fetch_context, Config())

        assert list(outcomes) == [ProviderID.CLAUDE, ProviderID.CODEX]


class TestCategorizeResults:
    """Tests for categorize_results."""

    @pytest.mark.asyncio
    async def test_groups(self, fetch_context):
        pipeline = RecordingPipeline(fail=[ProviderID.CODEX])
        outcomes = await fetch_all(
            pipeline, fetch_context, [ProviderID.CLAUDE, ProviderID.CODEX]
        )

        categories = categorize_results(outcomes)

        assert categories == {
            "success": [ProviderID.CLAUDE],
            "failure": [ProviderID.CODEX],
        }

    def test_empty(self):
        assert categorize_results({}) == {}
