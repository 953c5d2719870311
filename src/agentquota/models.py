"""Data models for agentquota.

Defines the canonical usage shapes that every fetch strategy must produce.
Provider-specific responses are normalized into these structures before they
leave a strategy.
"""

from __future__ import annotations

from datetime import UTC
from datetime import datetime
from datetime import timedelta
from enum import StrEnum

import msgspec


class ProviderID(StrEnum):
    """Supported usage backends."""

    CLAUDE = "claude"
    CODEX = "codex"
    CURSOR = "cursor"
    GEMINI = "gemini"
    COPILOT = "copilot"
    ANTIGRAVITY = "antigravity"

    @property
    def display_name(self) -> str:
        """Return the human-readable provider name."""
        match self:
            case ProviderID.CLAUDE:
                return "Claude"
            case ProviderID.CODEX:
                return "Codex"
            case ProviderID.CURSOR:
                return "Cursor"
            case ProviderID.GEMINI:
                return "Gemini"
            case ProviderID.COPILOT:
                return "Copilot"
            case ProviderID.ANTIGRAVITY:
                return "Antigravity"

    @property
    def cli_name(self) -> str:
        return self.value


def clamp_percent(value: float) -> float:
    """Clamp a percentage into [0, 100]."""
    return max(0.0, min(100.0, float(value)))


class RateWindow(msgspec.Struct, frozen=True):
    """One ranked usage bucket (session, weekly, model-specific...)."""

    used_percent: float  # 0-100 percentage used
    window_minutes: int | None = None  # Window length, if known
    resets_at: datetime | None = None  # When the window resets (UTC)
    reset_description: str | None = None  # Raw reset text (e.g. from CLI output)
    label: str | None = None

    @classmethod
    def create(
        cls,
        used_percent: float,
        *,
        window_minutes: int | None = None,
        resets_at: datetime | None = None,
        reset_description: str | None = None,
        label: str | None = None,
    ) -> RateWindow:
        """Build a window with used_percent clamped into range."""
        return cls(
            used_percent=clamp_percent(used_percent),
            window_minutes=window_minutes,
            resets_at=resets_at,
            reset_description=reset_description,
            label=label,
        )

    @property
    def remaining_percent(self) -> float:
        """Return percentage remaining (100 - used_percent)."""
        return max(0.0, 100.0 - self.used_percent)

    def time_until_reset(self) -> timedelta | None:
        """Return time remaining until reset."""
        if self.resets_at is None:
            return None
        now = datetime.now(self.resets_at.tzinfo)
        return max(timedelta(0), self.resets_at - now)


class ProviderCostInfo(msgspec.Struct, frozen=True):
    """Spend and credit information."""

    daily_cost_usd: float | None = None
    monthly_cost_usd: float | None = None
    remaining_credits: float | None = None
    total_credits: float | None = None
    currency_code: str = "USD"
    period: str | None = None  # e.g. "Monthly"


class ProviderIdentity(msgspec.Struct, frozen=True):
    """Account and plan information."""

    email: str | None = None  # Account email
    organization: str | None = None  # Organization name
    plan: str | None = None  # Plan tier (e.g., "free", "pro", "max")
    auth_method: str | None = None  # How the data was authenticated ("oauth", "local")


class UsageSnapshot(msgspec.Struct, frozen=True):
    """Complete usage snapshot from a provider."""

    provider_id: ProviderID
    primary: RateWindow | None = None
    secondary: RateWindow | None = None
    tertiary: RateWindow | None = None
    cost: ProviderCostInfo | None = None
    updated_at: datetime = msgspec.field(default_factory=lambda: datetime.now(UTC))
    identity: ProviderIdentity | None = None
    account_id: str | None = None
    metadata: dict[str, str] = msgspec.field(default_factory=dict)

    @property
    def windows(self) -> tuple[RateWindow, ...]:
        """Return the present windows in rank order."""
        return tuple(
            w for w in (self.primary, self.secondary, self.tertiary) if w is not None
        )

    @property
    def highest_usage_percent(self) -> float:
        return max((w.used_percent for w in self.windows), default=0.0)

    @property
    def is_depleted(self) -> bool:
        return self.highest_usage_percent >= 99.0

    @property
    def is_approaching_limit(self) -> bool:
        return self.highest_usage_percent >= 80.0

    def is_stale(self, max_age_minutes: int = 10) -> bool:
        """Check if snapshot is older than max_age_minutes."""
        age = datetime.now(self.updated_at.tzinfo) - self.updated_at
        return age.total_seconds() > max_age_minutes * 60


def format_reset_countdown(delta: timedelta | None) -> str:
    """Format reset time as countdown string."""
    if delta is None:
        return ""

    total_seconds = int(delta.total_seconds())
    if total_seconds <= 0:
        return "now"

    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    if days > 0:
        return f"{days}d {hours}h"
    elif hours > 0:
        return f"{hours}h {minutes}m"
    else:
        return f"{minutes}m"


def usage_to_color(used_percent: float) -> str:
    """Threshold-based display color for a usage percentage."""
    if used_percent < 50:
        return "green"
    elif used_percent < 80:
        return "yellow"
    else:
        return "red"
