"""Fetch pipeline for executing provider fetch strategies."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from agentquota.core.context import FetchContext
from agentquota.core.context import SourceMode
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderID
from agentquota.strategies.base import FetchAttempt
from agentquota.strategies.base import FetchOutcome
from agentquota.strategies.base import FetchStrategy

if TYPE_CHECKING:
    from agentquota.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


def filter_strategies(
    strategies: Sequence[FetchStrategy],
    source_mode: SourceMode,
) -> list[FetchStrategy]:
    """Keep the strategies whose kind the source mode permits, in order."""
    return [s for s in strategies if source_mode.allows(s.kind)]


async def execute_fetch_pipeline(
    provider_id: ProviderID,
    strategies: Sequence[FetchStrategy],
    context: FetchContext,
) -> FetchOutcome:
    """Execute fetch strategies in priority order.

    Tries each permitted strategy in sequence until one succeeds, recording
    an attempt for every strategy considered. A strategy that declines
    fallback for its error ends the run with that error.

    Args:
        provider_id: Provider identifier
        strategies: Ordered list of fetch strategies to try
        context: Request context shared by every strategy

    Returns:
        FetchOutcome with result or error plus the attempt trail
    """
    attempts: list[FetchAttempt] = []

    candidates = filter_strategies(strategies, context.source_mode)
    if len(candidates) < len(strategies):
        logger.debug(
            "%s: source mode %s excludes %d of %d strategies",
            provider_id,
            context.source_mode,
            len(strategies) - len(candidates),
            len(strategies),
        )

    for strategy in candidates:
        try:
            available = await strategy.is_available(context)
        except Exception as e:
            logger.debug(
                "%s: availability check for %s failed: %s", provider_id, strategy.id, e
            )
            available = False
        if not available:
            logger.debug("%s: strategy %s unavailable", provider_id, strategy.id)
            attempts.append(
                FetchAttempt(
                    strategy_id=strategy.id,
                    kind=strategy.kind,
                    was_available=False,
                )
            )
            continue

        start_time = time.monotonic()
        try:
            result = await strategy.fetch(context)
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            attempts.append(
                FetchAttempt(
                    strategy_id=strategy.id,
                    kind=strategy.kind,
                    was_available=True,
                    error=e,
                    duration_ms=duration_ms,
                )
            )
            if not strategy.should_fallback(e, context):
                logger.info(
                    "%s: strategy %s failed without fallback: %s",
                    provider_id,
                    strategy.id,
                    e,
                )
                return FetchOutcome.failure(provider_id, e, attempts)
            logger.debug(
                "%s: strategy %s failed, trying next: %s", provider_id, strategy.id, e
            )
            continue

        logger.debug(
            "%s: strategy %s succeeded (%s)",
            provider_id,
            strategy.id,
            result.source_label,
        )
        return FetchOutcome.success(provider_id, result, attempts)

    return FetchOutcome.failure(
        provider_id,
        ProviderFetchError.no_available_strategy(provider_id),
        attempts,
    )


class FetchPipeline:
    """Entry point that resolves a provider's strategies and runs them.

    Holds only a reference to the immutable registry, so one instance can
    serve concurrent fetches.
    """

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def fetch(self, context: FetchContext, provider_id: ProviderID) -> FetchOutcome:
        """Fetch usage for one provider."""
        descriptor = self._registry.descriptor(provider_id)
        strategies = descriptor.resolve_strategies(context)
        return await execute_fetch_pipeline(provider_id, strategies, context)
