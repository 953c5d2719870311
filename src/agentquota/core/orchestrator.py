"""Orchestration for multi-provider fetch operations."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from collections.abc import Iterable

import msgspec

from agentquota.config.settings import DEFAULT_MAX_CONCURRENT
from agentquota.config.settings import Config
from agentquota.core.context import FetchContext
from agentquota.core.context import SourceMode
from agentquota.core.fetch import FetchPipeline
from agentquota.models import ProviderID
from agentquota.strategies.base import FetchOutcome

logger = logging.getLogger(__name__)

ContextFactory = Callable[[ProviderID], FetchContext]


async def fetch_all(
    pipeline: FetchPipeline,
    context: FetchContext | ContextFactory,
    provider_ids: Iterable[ProviderID],
    *,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    on_complete: Callable[[FetchOutcome], None] | None = None,
) -> dict[ProviderID, FetchOutcome]:
    """Fetch usage data from several providers concurrently.

    Each provider gets its own pipeline run; runs share nothing but the
    registry. At most max_concurrent runs are in flight at once.

    Args:
        pipeline: Pipeline bound to the provider registry
        context: One context for every provider, or a factory building
            a context per provider
        provider_ids: Providers to fetch
        max_concurrent: Upper bound on simultaneous fetches
        on_complete: Optional callback called with each outcome

    Returns:
        Dict of provider_id to FetchOutcome, in request order
    """
    provider_ids = list(dict.fromkeys(provider_ids))
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def bounded_fetch(provider_id: ProviderID) -> FetchOutcome:
        provider_context = context(provider_id) if callable(context) else context
        async with semaphore:
            outcome = await pipeline.fetch(provider_context, provider_id)
        if on_complete:
            on_complete(outcome)
        return outcome

    outcomes = await asyncio.gather(*(bounded_fetch(pid) for pid in provider_ids))
    return dict(zip(provider_ids, outcomes))


def provider_context(
    config: Config, base: FetchContext, provider_id: ProviderID
) -> FetchContext:
    """Layer a provider's configured settings over the caller's context.

    An explicit source mode from the caller wins over the provider's
    configured source.
    """
    provider_cfg = config.get_provider_config(provider_id)
    context = base.with_settings(config.settings_snapshot(provider_id))
    if base.source_mode == SourceMode.AUTO and provider_cfg.source != SourceMode.AUTO:
        context = msgspec.structs.replace(context, source_mode=provider_cfg.source)
    return context


async def fetch_enabled_providers(
    pipeline: FetchPipeline,
    base: FetchContext,
    config: Config,
    on_complete: Callable[[FetchOutcome], None] | None = None,
) -> dict[ProviderID, FetchOutcome]:
    """Fetch every registered provider that the configuration enables."""
    enabled = [
        provider_id
        for provider_id in pipeline.registry
        if config.is_provider_enabled(provider_id.value)
    ]
    logger.debug("Fetching enabled providers: %s", ", ".join(enabled))
    return await fetch_all(
        pipeline,
        lambda provider_id: provider_context(config, base, provider_id),
        enabled,
        max_concurrent=config.fetch.max_concurrent,
        on_complete=on_complete,
    )


def categorize_results(
    outcomes: dict[ProviderID, FetchOutcome],
) -> dict[str, list[ProviderID]]:
    """Categorize outcomes by result type.

    Returns dict with keys 'success' and 'failure' (absent when empty).
    """
    categories: dict[str, list[ProviderID]] = defaultdict(list)
    for provider_id, outcome in outcomes.items():
        categories["success" if outcome.is_success else "failure"].append(provider_id)
    return dict(categories)
