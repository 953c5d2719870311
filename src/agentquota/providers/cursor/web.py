"""Web (session cookie) strategy for Cursor provider."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import msgspec

from agentquota.config.credentials import credential_path
from agentquota.config.credentials import read_credential
from agentquota.core.context import CookieSourceMode
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
from agentquota.strategies.base import is_credential_error
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__Secure-next-auth.session-token"
SESSION_KEYS = ("session_token", "token", "session_key", "session")


class UsageAmount(msgspec.Struct, rename="camel"):
    used: int = 0
    limit: int | None = None
    total_percent_used: float | None = None


class IndividualUsage(msgspec.Struct, rename="camel"):
    plan: UsageAmount | None = None
    on_demand: UsageAmount | None = None


class UsageSummary(msgspec.Struct, rename="camel"):
    billing_cycle_end: str | None = None
    membership_type: str | None = None
    individual_usage: IndividualUsage | None = None


class UserInfo(msgspec.Struct):
    id: str | int | None = None
    email: str | None = None
    name: str | None = None
    sub: str | None = None


def load_stored_cookie(path: Path) -> str | None:
    """Read a saved session file as a Cookie header.

    The file may be JSON holding the token under a common key, a bare
    token, or a full Cookie header. Files readable by others are ignored.
    """
    content = read_credential(path, require_secure=True)
    if not content:
        return None
    try:
        text = content.decode().strip()
    except UnicodeDecodeError:
        logger.debug("Cursor session file is not text: %s", path)
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, dict):
        for key in SESSION_KEYS:
            if isinstance(token := data.get(key), str) and token:
                return f"{SESSION_COOKIE}={token}"
        return None
    if not text:
        return None
    return text if "=" in text else f"{SESSION_COOKIE}={text}"


def plan_display_name(membership: str | None) -> str | None:
    if not membership:
        return None
    match membership.lower():
        case "free" | "hobby":
            return "Cursor Free"
        case "pro":
            return "Cursor Pro"
        case "enterprise":
            return "Cursor Enterprise"
        case "team":
            return "Cursor Team"
    return f"Cursor {membership.capitalize()}"


def parse_usage_summary(
    summary: UsageSummary, user: UserInfo | None
) -> tuple[UsageSnapshot, ProviderCostInfo | None]:
    """Build plan and on-demand windows from usage-summary.

    Amounts are in cents. The plan percentage comes from used/limit when a
    limit exists, otherwise from totalPercentUsed (0-1 or 0-100).
    """
    resets_at = parse_reset_time(summary.billing_cycle_end)
    individual = summary.individual_usage or IndividualUsage()

    plan_percent = 0.0
    if (plan := individual.plan) is not None:
        if plan.limit:
            plan_percent = plan.used / plan.limit * 100
        elif plan.total_percent_used is not None:
            total = plan.total_percent_used
            plan_percent = total * 100 if total <= 1 else total

    primary = RateWindow.create(plan_percent, resets_at=resets_at, label="Plan")

    secondary = None
    credits = None
    on_demand = individual.on_demand
    if on_demand is not None and (on_demand.used > 0 or on_demand.limit is not None):
        used = on_demand.used / 100
        limit = on_demand.limit / 100 if on_demand.limit is not None else None
        if limit is not None:
            label = f"${used:.2f} / ${limit:.2f}"
            percent = used / limit * 100 if limit > 0 else 0
        else:
            label = f"${used:.2f} used"
            percent = 0
        secondary = RateWindow.create(percent, resets_at=resets_at, label=label)
        credits = ProviderCostInfo(
            monthly_cost_usd=used,
            total_credits=limit,
            remaining_credits=limit - used if limit is not None else None,
            period="Monthly",
        )

    snapshot = UsageSnapshot(
        provider_id=ProviderID.CURSOR,
        primary=primary,
        secondary=secondary,
        cost=credits,
        identity=ProviderIdentity(
            email=user.email if user else None,
            plan=plan_display_name(summary.membership_type),
            auth_method="web",
        ),
    )
    return snapshot, credits


class CursorWebStrategy:
    """Fetch Cursor usage using a cursor.com session cookie."""

    id = "cursor-web"
    kind = FetchKind.WEB

    USAGE_URL = "https://www.cursor.com/api/usage-summary"
    USER_URL = "https://www.cursor.com/api/auth/me"

    @property
    def session_path(self) -> Path:
        return credential_path("cursor", "session")

    def cookie_header(self, context: FetchContext) -> str | None:
        settings = context.settings
        if settings is not None:
            if settings.cookie_source == CookieSourceMode.OFF:
                return None
            if settings.manual_cookie_header:
                return settings.manual_cookie_header.strip()
            if settings.cookie_source == CookieSourceMode.MANUAL:
                return None
        return load_stored_cookie(self.session_path)

    async def is_available(self, context: FetchContext) -> bool:
        return self.cookie_header(context) is not None

    async def fetch(self, context: FetchContext) -> FetchResult:
        cookie = self.cookie_header(context)
        if cookie is None:
            raise ProviderFetchError.authentication_required(
                ProviderID.CURSOR,
                "No Cursor session found. Set a cookie header for cursor in config.toml.",
            )

        headers = {"Cookie": cookie, "Accept": "application/json"}
        async with get_http_client() as client:
            user_response = await client.get(self.USER_URL, headers=headers)
            usage_response = await client.get(self.USAGE_URL, headers=headers)

        user = None
        if user_response.status_code in (401, 403):
            raise ProviderFetchError.invalid_credentials(ProviderID.CURSOR)
        if user_response.status_code == 200:
            try:
                user = msgspec.json.decode(user_response.content, type=UserInfo)
            except (msgspec.DecodeError, msgspec.ValidationError) as e:
                logger.debug("Ignoring unreadable Cursor user info: %s", e)

        raise_for_status(usage_response, ProviderID.CURSOR)
        try:
            summary = msgspec.json.decode(usage_response.content, type=UsageSummary)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise ProviderFetchError.parse_error(
                "Invalid usage-summary response", ProviderID.CURSOR
            ) from e

        snapshot, credits = parse_usage_summary(summary, user)
        return make_result(self, snapshot, "web", credits=credits)

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return not is_credential_error(error)
