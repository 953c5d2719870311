"""Web strategy for Claude provider (claude.ai session cookie)."""

from __future__ import annotations

import logging

import httpx
import msgspec

from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.core.http import get_http_client
from agentquota.errors.fetch import ProviderFetchError
from agentquota.errors.http import raise_for_status
from agentquota.models import ProviderCostInfo
from agentquota.models import ProviderID
from agentquota.providers.claude.oauth import OAuthUsageResponse
from agentquota.providers.claude.oauth import build_usage_snapshot
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)

SESSION_KEY_ENV = "CLAUDE_SESSION_KEY"
SESSION_KEY_PREFIX = "sk-ant-"


class OverageResponse(msgspec.Struct):
    is_enabled: bool | None = None
    monthly_credit_limit: float | None = None
    used_credits: float | None = None
    currency: str | None = None


def session_key_from_cookie(cookie_header: str) -> str | None:
    """Pull the sessionKey value out of a Cookie header, or accept a bare key."""
    for part in cookie_header.split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name == "sessionKey":
            return value.strip() or None
    stripped = cookie_header.strip()
    if stripped.startswith(SESSION_KEY_PREFIX):
        return stripped
    return None


class ClaudeWebStrategy:
    """Fetch Claude usage using a claude.ai session key.

    The key comes from CLAUDE_SESSION_KEY or a manually configured cookie
    header; reading browser cookie stores is not supported.
    """

    id = "claude-web"
    kind = FetchKind.WEB

    BASE_URL = "https://claude.ai/api"
    TIMEOUT = 15.0

    def session_key(self, context: FetchContext) -> str | None:
        key = context.env(SESSION_KEY_ENV)
        if key and key.startswith(SESSION_KEY_PREFIX):
            return key
        settings = context.settings
        if settings and settings.manual_cookie_header:
            return session_key_from_cookie(settings.manual_cookie_header)
        return None

    async def is_available(self, context: FetchContext) -> bool:
        return self.session_key(context) is not None

    async def fetch(self, context: FetchContext) -> FetchResult:
        session_key = self.session_key(context)
        if session_key is None:
            raise ProviderFetchError.authentication_required(ProviderID.CLAUDE)

        headers = {"Cookie": f"sessionKey={session_key}", "Accept": "application/json"}
        async with get_http_client(timeout=self.TIMEOUT) as client:
            org_id = await self._fetch_org_id(client, headers)
            usage = await self._fetch_usage(client, org_id, headers)
            cost = await self._fetch_overage(client, org_id, headers)

        snapshot = build_usage_snapshot(usage, cost, "web")
        return make_result(self, snapshot, "web", credits=cost)

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return True

    async def _fetch_org_id(self, client: httpx.AsyncClient, headers: dict) -> str:
        response = await client.get(f"{self.BASE_URL}/organizations", headers=headers)
        raise_for_status(response, ProviderID.CLAUDE)
        try:
            orgs = response.json()
        except ValueError as e:
            raise ProviderFetchError.parse_error("Invalid organizations response", ProviderID.CLAUDE) from e

        if isinstance(orgs, list) and orgs and isinstance(orgs[0], dict):
            uuid = orgs[0].get("uuid")
            if isinstance(uuid, str) and uuid:
                return uuid
        raise ProviderFetchError.parse_error(
            "Could not extract organization UUID", ProviderID.CLAUDE
        )

    async def _fetch_usage(
        self, client: httpx.AsyncClient, org_id: str, headers: dict
    ) -> OAuthUsageResponse:
        response = await client.get(
            f"{self.BASE_URL}/organizations/{org_id}/usage", headers=headers
        )
        raise_for_status(response, ProviderID.CLAUDE)
        try:
            return msgspec.json.decode(response.content, type=OAuthUsageResponse)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise ProviderFetchError.parse_error(str(e), ProviderID.CLAUDE) from e

    async def _fetch_overage(
        self, client: httpx.AsyncClient, org_id: str, headers: dict
    ) -> ProviderCostInfo | None:
        """Optional spend limit; failures leave cost info empty."""
        try:
            response = await client.get(
                f"{self.BASE_URL}/organizations/{org_id}/overage_spend_limit",
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.debug("Overage limit request failed: %s", e)
            return None
        if response.status_code != 200:
            return None
        try:
            overage = msgspec.json.decode(response.content, type=OverageResponse)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            logger.debug("Could not parse overage limit: %s", e)
            return None
        if not overage.is_enabled:
            return None

        # Values are in cents
        used = (overage.used_credits or 0) / 100
        limit = (overage.monthly_credit_limit or 0) / 100
        return ProviderCostInfo(
            monthly_cost_usd=used,
            remaining_credits=limit - used,
            total_credits=limit,
            currency_code=overage.currency or "USD",
            period="Monthly",
        )
