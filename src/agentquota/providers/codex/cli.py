"""Codex CLI credential strategy for Codex (OpenAI) provider."""

from __future__ import annotations

import logging
from datetime import UTC
from datetime import datetime
from pathlib import Path

import msgspec

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
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import is_credential_error
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)


class CodexCredentials(msgspec.Struct, frozen=True):
    access_token: str
    account_id: str | None = None


class WindowSnapshot(msgspec.Struct):
    used_percent: float
    reset_at: float
    limit_window_seconds: int


class RateLimitDetails(msgspec.Struct):
    primary_window: WindowSnapshot | None = None
    secondary_window: WindowSnapshot | None = None


class CreditDetails(msgspec.Struct):
    has_credits: bool = False
    unlimited: bool = False
    balance: float | str | None = None

    @property
    def balance_value(self) -> float | None:
        if isinstance(self.balance, str):
            try:
                return float(self.balance)
            except ValueError:
                return None
        return self.balance


class UsageResponse(msgspec.Struct):
    plan_type: str | None = None
    rate_limit: RateLimitDetails | None = None
    credits: CreditDetails | None = None


def auth_file(context: FetchContext) -> Path:
    """Locate auth.json, honouring CODEX_HOME."""
    if codex_home := context.env("CODEX_HOME"):
        return Path(codex_home) / "auth.json"
    return Path.home() / ".codex" / "auth.json"


def parse_auth(data: dict) -> CodexCredentials | None:
    """Read the Codex CLI's auth.json.

    A legacy OPENAI_API_KEY entry wins over OAuth tokens.
    """
    api_key = data.get("OPENAI_API_KEY")
    if isinstance(api_key, str) and api_key.strip():
        return CodexCredentials(access_token=api_key.strip())

    tokens = data.get("tokens")
    if not isinstance(tokens, dict):
        return None
    access_token = tokens.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        return None
    account_id = tokens.get("account_id")
    return CodexCredentials(
        access_token=access_token,
        account_id=account_id if isinstance(account_id, str) and account_id else None,
    )


def _window(window: WindowSnapshot, label: str) -> RateWindow:
    return RateWindow.create(
        window.used_percent,
        window_minutes=window.limit_window_seconds // 60,
        resets_at=datetime.fromtimestamp(window.reset_at, tz=UTC),
        label=label,
    )


def parse_usage_response(
    usage: UsageResponse,
) -> tuple[UsageSnapshot, ProviderCostInfo | None]:
    """Build the snapshot from the wham/usage payload.

    Rate limit windows are preferred; without them the primary window
    describes the credit situation instead.
    """
    primary = None
    secondary = None
    if usage.rate_limit is not None:
        if usage.rate_limit.primary_window is not None:
            primary = _window(usage.rate_limit.primary_window, "Session")
        if usage.rate_limit.secondary_window is not None:
            secondary = _window(usage.rate_limit.secondary_window, "Weekly")

    credits = None
    if usage.credits is not None:
        balance = usage.credits.balance_value
        if usage.credits.unlimited:
            if primary is None:
                primary = RateWindow.create(0, label="Unlimited")
        elif balance is not None:
            credits = ProviderCostInfo(remaining_credits=balance)
            if primary is None:
                primary = RateWindow.create(0, label=f"Credits: ${balance:.2f}")

    if primary is None:
        primary = RateWindow.create(0, label="Unknown")

    plan = usage.plan_type.capitalize() if usage.plan_type else "Unknown"
    snapshot = UsageSnapshot(
        provider_id=ProviderID.CODEX,
        primary=primary,
        secondary=secondary,
        cost=credits,
        identity=ProviderIdentity(plan=plan, auth_method="oauth"),
    )
    return snapshot, credits


class CodexCLIStrategy:
    """Fetch Codex usage with the tokens the Codex CLI stores in auth.json."""

    id = "codex-cli"
    kind = FetchKind.CLI

    USAGE_URL = "https://chatgpt.com/backend-api/wham/usage"

    def load_credentials(self, context: FetchContext) -> CodexCredentials | None:
        data = read_json_credential(auth_file(context))
        if data is None:
            return None
        return parse_auth(data)

    async def is_available(self, context: FetchContext) -> bool:
        return self.load_credentials(context) is not None

    async def fetch(self, context: FetchContext) -> FetchResult:
        credentials = self.load_credentials(context)
        if credentials is None:
            raise ProviderFetchError.authentication_required(ProviderID.CODEX)

        headers = {
            "Authorization": f"Bearer {credentials.access_token}",
            "Accept": "application/json",
        }
        if credentials.account_id:
            headers["ChatGPT-Account-Id"] = credentials.account_id

        async with get_http_client() as client:
            response = await client.get(self.USAGE_URL, headers=headers)
        raise_for_status(response, ProviderID.CODEX)

        try:
            usage = msgspec.json.decode(response.content, type=UsageResponse)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise ProviderFetchError.parse_error(str(e), ProviderID.CODEX) from e

        snapshot, credits = parse_usage_response(usage)
        logger.debug("Codex plan %s", snapshot.identity.plan if snapshot.identity else None)
        return make_result(self, snapshot, "oauth", credits=credits)

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return not is_credential_error(error)
