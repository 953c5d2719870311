"""Request context handed to every fetch strategy."""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType

import msgspec

from agentquota.models import ProviderID


class FetchKind(StrEnum):
    """How a strategy acquires its data."""

    CLI = "cli"
    WEB = "web"
    OAUTH = "oauth"
    API_TOKEN = "api_token"
    LOCAL_PROBE = "local_probe"


class SourceMode(StrEnum):
    """Caller-supplied restriction on which strategy kinds may run."""

    AUTO = "auto"
    CLI = "cli"
    WEB = "web"
    OAUTH = "oauth"
    API = "api"

    @property
    def allowed_kinds(self) -> frozenset[FetchKind]:
        """Strategy kinds this mode permits."""
        match self:
            case SourceMode.AUTO:
                return frozenset(FetchKind)
            case SourceMode.CLI:
                return frozenset({FetchKind.CLI, FetchKind.LOCAL_PROBE})
            case SourceMode.WEB:
                return frozenset({FetchKind.WEB})
            case SourceMode.OAUTH:
                return frozenset({FetchKind.OAUTH})
            case SourceMode.API:
                return frozenset({FetchKind.API_TOKEN})

    def allows(self, kind: FetchKind) -> bool:
        return kind in self.allowed_kinds


class FetchRuntime(StrEnum):
    """Where the fetch was initiated from."""

    APP = "app"
    CLI = "cli"


class CookieSourceMode(StrEnum):
    AUTO = "auto"
    MANUAL = "manual"
    OFF = "off"


class ProviderSettingsSnapshot(msgspec.Struct, frozen=True):
    """Read-only view of a provider's user settings."""

    cookie_source: CookieSourceMode = CookieSourceMode.AUTO
    manual_cookie_header: str | None = None
    api_token: str | None = None
    custom_settings: dict[str, str] = msgspec.field(default_factory=dict)


class ProviderAccount(msgspec.Struct, frozen=True):
    """An already-selected account to fetch for."""

    id: str
    provider_id: ProviderID
    label: str | None = None
    email: str | None = None


class BrowserDetection(msgspec.Struct, frozen=True):
    available_browsers: tuple[str, ...] = ()
    default_browser: str | None = None


def _environment_snapshot() -> Mapping[str, str]:
    return MappingProxyType(dict(os.environ))


class FetchContext(msgspec.Struct, frozen=True):
    """Immutable inputs for one fetch invocation.

    The environment is captured once when the context is built; strategies
    read credentials from it rather than from os.environ.
    """

    runtime: FetchRuntime
    source_mode: SourceMode = SourceMode.AUTO
    environment: Mapping[str, str] = msgspec.field(default_factory=_environment_snapshot)
    settings: ProviderSettingsSnapshot | None = None
    account: ProviderAccount | None = None
    browser_detection: BrowserDetection | None = None

    def env(self, *names: str) -> str | None:
        """Return the first non-blank value among the named variables."""
        for name in names:
            value = self.environment.get(name)
            if value and value.strip():
                return value.strip()
        return None

    def with_settings(self, settings: ProviderSettingsSnapshot | None) -> FetchContext:
        """Return a copy carrying a different settings snapshot."""
        return msgspec.structs.replace(self, settings=settings)


def default_app_context(
    source_mode: SourceMode = SourceMode.AUTO,
    settings: ProviderSettingsSnapshot | None = None,
) -> FetchContext:
    """Create a default fetch context for app runtime."""
    return FetchContext(
        runtime=FetchRuntime.APP,
        source_mode=source_mode,
        settings=settings or ProviderSettingsSnapshot(),
    )


def default_cli_context(source_mode: SourceMode = SourceMode.AUTO) -> FetchContext:
    """Create a default fetch context for CLI runtime."""
    return FetchContext(runtime=FetchRuntime.CLI, source_mode=source_mode)
