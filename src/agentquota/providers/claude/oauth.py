"""OAuth strategy for Claude provider."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC
from datetime import datetime
from pathlib import Path

import msgspec

from agentquota.config.credentials import credential_path
from agentquota.config.credentials import read_json_credential
from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.core.http import get_http_client
from agentquota.errors.fetch import ProviderFetchError
from agentquota.errors.http import raise_for_status
from agentquota.models import ProviderCostInfo
from agentquota.models import ProviderID
from agentquota.models import ProviderIdentity
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.normalize import parse_reset_time
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)

SESSION_MINUTES = 5 * 60
WEEK_MINUTES = 7 * 24 * 60


class OAuthCredentials(msgspec.Struct, frozen=True):
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return True
        return datetime.now(UTC) >= self.expires_at


class UsageWindow(msgspec.Struct):
    utilization: float | None = None
    resets_at: str | None = None


class ExtraUsage(msgspec.Struct):
    is_enabled: bool | None = None
    monthly_limit: float | None = None
    used_credits: float | None = None
    utilization: float | None = None
    currency: str | None = None


class OAuthUsageResponse(msgspec.Struct):
    five_hour: UsageWindow | None = None
    seven_day: UsageWindow | None = None
    seven_day_oauth_apps: UsageWindow | None = None
    seven_day_opus: UsageWindow | None = None
    seven_day_sonnet: UsageWindow | None = None
    extra_usage: ExtraUsage | None = None


def default_credential_paths() -> tuple[Path, ...]:
    return (
        Path.home() / ".claude" / ".credentials.json",
        credential_path("claude", "oauth"),
    )


def parse_credentials(data: dict) -> OAuthCredentials | None:
    """Read Claude CLI's credential format.

    Expected format:
    {"claudeAiOauth": {"accessToken": "...", "refreshToken": "...", "expiresAt": 1737000000000}}
    """
    oauth = data.get("claudeAiOauth")
    if not isinstance(oauth, dict):
        return None
    access_token = oauth.get("accessToken")
    if not isinstance(access_token, str) or not access_token:
        return None

    expires_at = None
    millis = oauth.get("expiresAt")
    if isinstance(millis, int | float):
        expires_at = datetime.fromtimestamp(millis / 1000, tz=UTC)

    refresh_token = oauth.get("refreshToken")
    return OAuthCredentials(
        access_token=access_token,
        refresh_token=refresh_token if isinstance(refresh_token, str) else None,
        expires_at=expires_at,
    )


class ClaudeOAuthStrategy:
    """Fetch Claude usage using the Claude CLI's stored OAuth tokens."""

    id = "claude-oauth"
    kind = FetchKind.OAUTH

    USAGE_URL = "https://api.anthropic.com/api/oauth/usage"
    BETA_HEADER = "oauth-2025-04-20"

    def __init__(self, credential_paths: Sequence[Path] | None = None) -> None:
        self.credential_paths = (
            tuple(credential_paths)
            if credential_paths is not None
            else default_credential_paths()
        )

    def load_credentials(self) -> OAuthCredentials | None:
        for path in self.credential_paths:
            data = read_json_credential(path)
            if data is None:
                continue
            credentials = parse_credentials(data)
            if credentials is not None:
                return credentials
        return None

    async def is_available(self, context: FetchContext) -> bool:
        return self.load_credentials() is not None

    async def fetch(self, context: FetchContext) -> FetchResult:
        credentials = self.load_credentials()
        if credentials is None:
            raise ProviderFetchError.authentication_required(ProviderID.CLAUDE)
        if credentials.is_expired:
            logger.debug("Claude OAuth token expired at %s", credentials.expires_at)
            raise ProviderFetchError.authentication_required(
                ProviderID.CLAUDE, "Claude OAuth token expired. Run `claude` to sign in again."
            )

        async with get_http_client() as client:
            response = await client.get(
                self.USAGE_URL,
                headers={
                    "Authorization": f"Bearer {credentials.access_token}",
                    "Accept": "application/json",
                    "anthropic-beta": self.BETA_HEADER,
                },
            )
        raise_for_status(response, ProviderID.CLAUDE)

        try:
            usage = msgspec.json.decode(response.content, type=OAuthUsageResponse)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise ProviderFetchError.parse_error(str(e), ProviderID.CLAUDE) from e

        snapshot = build_usage_snapshot(usage, monthly_cost(usage.extra_usage), "oauth")
        return make_result(self, snapshot, "oauth", credits=snapshot.cost)

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return True


def usage_window(window: UsageWindow, minutes: int, label: str) -> RateWindow:
    # Utilization is already a percentage (0-100)
    return RateWindow.create(
        window.utilization or 0,
        window_minutes=minutes,
        resets_at=parse_reset_time(window.resets_at),
        label=label,
    )


def monthly_cost(extra: ExtraUsage | None) -> ProviderCostInfo | None:
    """Convert enabled extra usage (reported in cents) to dollars."""
    if extra is None or not extra.is_enabled:
        return None
    used = extra.used_credits or 0
    limit = extra.monthly_limit or 0
    return ProviderCostInfo(
        monthly_cost_usd=used / 100,
        remaining_credits=(limit - used) / 100,
        total_credits=limit / 100,
        currency_code=extra.currency or "USD",
        period="Monthly",
    )


def build_usage_snapshot(
    usage: OAuthUsageResponse,
    cost: ProviderCostInfo | None,
    auth_method: str,
) -> UsageSnapshot:
    """Map a Claude usage response onto session, weekly and model windows.

    The OAuth and claude.ai endpoints share this format (2025-01):
    {
        "five_hour": { "utilization": 0.0, "resets_at": "2026-01-17T06:59:59.846865+00:00" },
        "seven_day": { "utilization": 27.0, "resets_at": "2026-01-22T18:59:59.846886+00:00" },
        "seven_day_sonnet": { "utilization": 3.0, "resets_at": "..." },
        "extra_usage": { "is_enabled": false, ... }
    }
    """
    primary = None
    if usage.five_hour is not None:
        primary = usage_window(usage.five_hour, SESSION_MINUTES, "Session")

    secondary = None
    if usage.seven_day is not None:
        secondary = usage_window(usage.seven_day, WEEK_MINUTES, "Weekly")

    tertiary = None
    if usage.seven_day_sonnet is not None:
        tertiary = usage_window(usage.seven_day_sonnet, WEEK_MINUTES, "Sonnet")
    elif usage.seven_day_opus is not None:
        tertiary = usage_window(usage.seven_day_opus, WEEK_MINUTES, "Opus")

    return UsageSnapshot(
        provider_id=ProviderID.CLAUDE,
        primary=primary,
        secondary=secondary,
        tertiary=tertiary,
        cost=cost,
        identity=ProviderIdentity(auth_method=auth_method),
    )
