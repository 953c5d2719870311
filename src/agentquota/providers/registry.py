"""Provider catalog for agentquota.

The registry is built once by build_registry() and handed to the fetch
pipeline; nothing looks providers up through module globals.
"""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Iterator
from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType

import msgspec

from agentquota.core.context import FetchContext
from agentquota.models import ProviderID
from agentquota.providers.antigravity import AntigravityLocalStrategy
from agentquota.providers.claude import ClaudeCLIStrategy
from agentquota.providers.claude import ClaudeOAuthStrategy
from agentquota.providers.claude import ClaudeWebStrategy
from agentquota.providers.codex import CodexCLIStrategy
from agentquota.providers.copilot import CopilotAPIStrategy
from agentquota.providers.copilot import CopilotCLIStrategy
from agentquota.providers.cursor import CursorWebStrategy
from agentquota.providers.gemini import GeminiCLIStrategy
from agentquota.strategies.base import FetchStrategy

DEFAULT_REFRESH_INTERVAL = 300

FetchPlan = Callable[[FetchContext], tuple[FetchStrategy, ...]]


class AuthMethod(StrEnum):
    OAUTH = "oauth"
    API_KEY = "api_key"
    COOKIES = "cookies"
    CLI = "cli"

    @property
    def display_name(self) -> str:
        match self:
            case AuthMethod.OAUTH:
                return "OAuth"
            case AuthMethod.API_KEY:
                return "API Key"
            case AuthMethod.COOKIES:
                return "Browser Cookies"
            case AuthMethod.CLI:
                return "CLI"


class ProviderMetadata(msgspec.Struct, frozen=True):
    """Display labels, links and capabilities of a provider."""

    display_name: str
    session_label: str = "Session"
    quota_label: str = "Weekly"
    tertiary_label: str | None = None
    supports_tertiary: bool = False
    supports_credits: bool = False
    supports_multi_account: bool = True
    dashboard_url: str | None = None
    status_page_url: str | None = None
    default_refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    description: str = ""


class ProviderCLIConfig(msgspec.Struct, frozen=True):
    binary_name: str | None = None
    aliases: tuple[str, ...] = ()
    usage_command: str | None = None


class ProviderDescriptor(msgspec.Struct, frozen=True):
    """Everything needed to present and fetch one provider."""

    id: ProviderID
    metadata: ProviderMetadata
    auth_methods: tuple[AuthMethod, ...]
    fetch_plan: FetchPlan
    cli_config: ProviderCLIConfig = ProviderCLIConfig()

    def resolve_strategies(self, context: FetchContext) -> tuple[FetchStrategy, ...]:
        """Ordered strategies for this provider under the given context."""
        return tuple(self.fetch_plan(context))

    def window_labels(self) -> tuple[str, str, str | None]:
        meta = self.metadata
        return meta.session_label, meta.quota_label, meta.tertiary_label


class ProviderRegistry:
    """Immutable mapping of provider IDs to descriptors."""

    def __init__(self, descriptors: Mapping[ProviderID, ProviderDescriptor]) -> None:
        self._descriptors = MappingProxyType(dict(descriptors))
        names: dict[str, ProviderID] = {}
        for provider_id, descriptor in self._descriptors.items():
            names[provider_id.cli_name] = provider_id
            for alias in descriptor.cli_config.aliases:
                names[alias.lower()] = provider_id
        self._cli_names = MappingProxyType(names)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._descriptors

    def __iter__(self) -> Iterator[ProviderID]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def descriptor(self, provider_id: ProviderID) -> ProviderDescriptor:
        """Get the descriptor for a provider.

        Raises:
            KeyError: If the provider is not registered.
        """
        return self._descriptors[provider_id]

    def all(self) -> tuple[ProviderDescriptor, ...]:
        """All descriptors, in ProviderID declaration order."""
        return tuple(self._descriptors[p] for p in ProviderID if p in self._descriptors)

    @property
    def cli_names(self) -> Mapping[str, ProviderID]:
        return self._cli_names

    def provider_for_cli_name(self, name: str) -> ProviderID | None:
        """Look up a provider by CLI name or alias, case-insensitively."""
        return self._cli_names.get(name.strip().lower())


def _claude() -> ProviderDescriptor:
    return ProviderDescriptor(
        id=ProviderID.CLAUDE,
        metadata=ProviderMetadata(
            display_name="Claude",
            tertiary_label="Opus",
            supports_tertiary=True,
            supports_credits=True,
            dashboard_url="https://console.anthropic.com/settings/billing",
            status_page_url="https://status.anthropic.com",
            description="Anthropic Claude Code usage",
        ),
        auth_methods=(AuthMethod.OAUTH, AuthMethod.CLI, AuthMethod.COOKIES),
        fetch_plan=lambda _: (
            ClaudeOAuthStrategy(),
            ClaudeCLIStrategy(),
            ClaudeWebStrategy(),
        ),
        cli_config=ProviderCLIConfig(binary_name="claude", usage_command="/usage"),
    )


def _codex() -> ProviderDescriptor:
    return ProviderDescriptor(
        id=ProviderID.CODEX,
        metadata=ProviderMetadata(
            display_name="Codex",
            supports_credits=True,
            dashboard_url="https://platform.openai.com/usage",
            status_page_url="https://status.openai.com",
            description="OpenAI Codex CLI usage",
        ),
        auth_methods=(AuthMethod.CLI,),
        fetch_plan=lambda _: (CodexCLIStrategy(),),
        cli_config=ProviderCLIConfig(binary_name="codex", usage_command="/usage"),
    )


def _cursor() -> ProviderDescriptor:
    return ProviderDescriptor(
        id=ProviderID.CURSOR,
        metadata=ProviderMetadata(
            display_name="Cursor",
            session_label="Plan",
            quota_label="Credits",
            supports_credits=True,
            supports_multi_account=False,
            dashboard_url="https://www.cursor.com/settings",
            description="Cursor IDE usage",
        ),
        auth_methods=(AuthMethod.COOKIES,),
        fetch_plan=lambda _: (CursorWebStrategy(),),
    )


def _gemini() -> ProviderDescriptor:
    return ProviderDescriptor(
        id=ProviderID.GEMINI,
        metadata=ProviderMetadata(
            display_name="Gemini",
            session_label="RPM",
            quota_label="Daily",
            dashboard_url="https://aistudio.google.com/app/apikey",
            status_page_url="https://status.cloud.google.com",
            description="Google Gemini CLI usage",
        ),
        auth_methods=(AuthMethod.API_KEY, AuthMethod.CLI),
        fetch_plan=lambda _: (GeminiCLIStrategy(),),
        cli_config=ProviderCLIConfig(binary_name="gemini", usage_command="--usage"),
    )


def _copilot() -> ProviderDescriptor:
    return ProviderDescriptor(
        id=ProviderID.COPILOT,
        metadata=ProviderMetadata(
            display_name="Copilot",
            session_label="Status",
            quota_label="Plan",
            dashboard_url="https://github.com/settings/copilot",
            status_page_url="https://www.githubstatus.com",
            description="GitHub Copilot usage",
        ),
        auth_methods=(AuthMethod.CLI, AuthMethod.API_KEY),
        fetch_plan=lambda _: (CopilotCLIStrategy(), CopilotAPIStrategy()),
        cli_config=ProviderCLIConfig(binary_name="gh", aliases=("github",)),
    )


def _antigravity(probe_timeout: float | None) -> ProviderDescriptor:
    def plan(_: FetchContext) -> tuple[FetchStrategy, ...]:
        if probe_timeout is None:
            return (AntigravityLocalStrategy(),)
        return (AntigravityLocalStrategy(timeout=probe_timeout),)

    return ProviderDescriptor(
        id=ProviderID.ANTIGRAVITY,
        metadata=ProviderMetadata(
            display_name="Antigravity",
            session_label="Claude",
            quota_label="Gemini Pro",
            tertiary_label="Gemini Flash",
            supports_tertiary=True,
            supports_multi_account=False,
            status_page_url="https://www.google.com/appsstatus/dashboard",
            description="Google Antigravity usage",
        ),
        auth_methods=(AuthMethod.CLI,),
        fetch_plan=plan,
        cli_config=ProviderCLIConfig(
            binary_name="antigravity", aliases=("windsurf", "codeium")
        ),
    )


def build_registry(probe_timeout: float | None = None) -> ProviderRegistry:
    """Build the catalog of every supported provider.

    Args:
        probe_timeout: Per-request timeout for the Antigravity local probe.
            Uses the strategy default when omitted.
    """
    descriptors = (
        _claude(),
        _codex(),
        _cursor(),
        _gemini(),
        _copilot(),
        _antigravity(probe_timeout),
    )
    return ProviderRegistry({d.id: d for d in descriptors})
