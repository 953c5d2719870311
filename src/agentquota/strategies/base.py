"""Fetch strategy interface and the records the pipeline produces."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import msgspec

from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.errors.fetch import FetchErrorKind
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderCostInfo
from agentquota.models import ProviderID
from agentquota.models import UsageSnapshot


@runtime_checkable
class FetchStrategy(Protocol):
    """One acquisition method for a provider.

    Implementations are stateless (or hold only static configuration) so a
    single instance can serve concurrent fetches.
    """

    @property
    def id(self) -> str:
        """Strategy identifier (e.g., 'claude-oauth', 'antigravity-local')."""
        ...

    @property
    def kind(self) -> FetchKind:
        ...

    async def is_available(self, context: FetchContext) -> bool:
        """
        Check if this strategy can be attempted.

        Returns True if credentials/requirements exist.
        Should be cheap and must not raise.
        """
        ...

    async def fetch(self, context: FetchContext) -> FetchResult:
        """
        Attempt to fetch usage data.

        Raises on failure; the pipeline records the error.
        """
        ...

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        """Whether the pipeline may try the next strategy after error."""
        ...


class FetchResult(msgspec.Struct, frozen=True):
    """Successful output of a strategy."""

    usage: UsageSnapshot
    source_label: str
    strategy_id: str
    strategy_kind: FetchKind
    credits: ProviderCostInfo | None = None


def make_result(
    strategy: FetchStrategy,
    usage: UsageSnapshot,
    source_label: str,
    credits: ProviderCostInfo | None = None,
) -> FetchResult:
    """Build a FetchResult stamped with the producing strategy."""
    return FetchResult(
        usage=usage,
        source_label=source_label,
        strategy_id=strategy.id,
        strategy_kind=strategy.kind,
        credits=credits,
    )


class FetchAttempt(msgspec.Struct, frozen=True):
    """Record of one strategy the pipeline considered."""

    strategy_id: str
    kind: FetchKind
    was_available: bool
    error: Exception | None = None
    duration_ms: float = 0.0


class FetchOutcome(msgspec.Struct, frozen=True):
    """Result or terminal error of one fetch, with the full attempt trail."""

    provider_id: ProviderID
    attempts: tuple[FetchAttempt, ...] = ()
    result: FetchResult | None = None
    error: Exception | None = None

    @classmethod
    def success(
        cls,
        provider_id: ProviderID,
        result: FetchResult,
        attempts: list[FetchAttempt],
    ) -> FetchOutcome:
        return cls(provider_id=provider_id, result=result, attempts=tuple(attempts))

    @classmethod
    def failure(
        cls,
        provider_id: ProviderID,
        error: Exception,
        attempts: list[FetchAttempt],
    ) -> FetchOutcome:
        return cls(provider_id=provider_id, error=error, attempts=tuple(attempts))

    @property
    def is_success(self) -> bool:
        return self.result is not None

    @property
    def usage(self) -> UsageSnapshot | None:
        return self.result.usage if self.result else None

    @property
    def source_label(self) -> str | None:
        return self.result.source_label if self.result else None


CREDENTIAL_ERROR_KINDS = frozenset(
    {FetchErrorKind.AUTHENTICATION_REQUIRED, FetchErrorKind.INVALID_CREDENTIALS}
)


def is_credential_error(error: Exception) -> bool:
    """Whether the error means the user has to fix their credentials."""
    return isinstance(error, ProviderFetchError) and error.kind in CREDENTIAL_ERROR_KINDS
