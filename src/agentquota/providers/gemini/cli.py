"""Gemini CLI credential strategy for Gemini (Google AI) provider.

Uses a GEMINI_API_KEY/GOOGLE_API_KEY from the environment when present,
otherwise the OAuth tokens the Gemini CLI keeps under ~/.gemini.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from pathlib import Path

import msgspec

from agentquota.config.credentials import read_json_credential
from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.core.http import get_http_client
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderID
from agentquota.models import ProviderIdentity
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.normalize import parse_reset_time
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import is_credential_error
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)

API_KEY_ENV = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
DAY_MINUTES = 1440

TIER_NAMES = {
    "free-tier": "Free",
    "standard-tier": "Standard",
    "g1-pro-tier": "Pro",
    "legacy-tier": "Legacy",
}


class GeminiCredentials(msgspec.Struct, frozen=True):
    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    expires_at: datetime | None = None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < datetime.now(UTC)


class CurrentTier(msgspec.Struct):
    id: str | None = None


class CodeAssistResponse(msgspec.Struct, rename="camel"):
    cloudaicompanion_project: str | None = None
    current_tier: CurrentTier | None = None

    @property
    def tier(self) -> str | None:
        if self.current_tier is None or not self.current_tier.id:
            return None
        return TIER_NAMES.get(self.current_tier.id, self.current_tier.id)


class QuotaBucket(msgspec.Struct, rename="camel"):
    model_id: str | None = None
    remaining_fraction: float | None = None
    reset_time: str | None = None


class QuotaResponse(msgspec.Struct):
    buckets: list[QuotaBucket] = []


class ModelQuotaLeft(msgspec.Struct, frozen=True):
    model_id: str
    percent_left: float
    resets_at: datetime | None = None


def parse_credentials(data: dict) -> GeminiCredentials | None:
    """Read oauth_creds.json; expiry_date is epoch milliseconds."""
    access_token = data.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        return None
    expires_at = None
    if isinstance(expiry := data.get("expiry_date"), int | float):
        expires_at = datetime.fromtimestamp(expiry / 1000, tz=UTC)
    return GeminiCredentials(
        access_token=access_token,
        refresh_token=data.get("refresh_token"),
        id_token=data.get("id_token"),
        expires_at=expires_at,
    )


def email_from_id_token(id_token: str | None) -> str | None:
    """Pull the email claim out of an unverified JWT payload."""
    if not id_token:
        return None
    parts = id_token.split(".")
    if len(parts) < 2:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, ValueError):
        return None
    email = claims.get("email") if isinstance(claims, dict) else None
    return email if isinstance(email, str) else None


def lowest_quotas(buckets: list[QuotaBucket]) -> list[ModelQuotaLeft]:
    """Keep the lowest remaining fraction per model, skipping _vertex twins."""
    lowest: dict[str, QuotaBucket] = {}
    for bucket in buckets:
        if bucket.model_id is None or bucket.remaining_fraction is None:
            continue
        if bucket.model_id.endswith("_vertex"):
            continue
        existing = lowest.get(bucket.model_id)
        if existing is None or bucket.remaining_fraction < existing.remaining_fraction:
            lowest[bucket.model_id] = bucket
    return [
        ModelQuotaLeft(
            model_id=model_id,
            percent_left=bucket.remaining_fraction * 100,
            resets_at=parse_reset_time(bucket.reset_time),
        )
        for model_id, bucket in sorted(lowest.items())
    ]


def _daily_window(quota: ModelQuotaLeft, label: str) -> RateWindow:
    return RateWindow.create(
        100 - quota.percent_left,
        window_minutes=DAY_MINUTES,
        resets_at=quota.resets_at,
        label=label,
    )


def build_oauth_snapshot(
    quotas: list[ModelQuotaLeft], email: str | None, tier: str | None
) -> UsageSnapshot:
    """Pro models rank first, Flash (excluding lite) second."""
    pro = [q for q in quotas if "pro" in q.model_id.lower()]
    flash = [
        q
        for q in quotas
        if "flash" in q.model_id.lower() and "lite" not in q.model_id.lower()
    ]
    pro_min = min(pro, key=lambda q: q.percent_left, default=None)
    flash_min = min(flash, key=lambda q: q.percent_left, default=None)

    secondary = None
    if pro_min is not None:
        primary = _daily_window(pro_min, "Pro")
        if flash_min is not None:
            secondary = _daily_window(flash_min, "Flash")
    elif flash_min is not None:
        primary = _daily_window(flash_min, "Flash")
    else:
        primary = RateWindow.create(0, label=tier or "Connected")

    return UsageSnapshot(
        provider_id=ProviderID.GEMINI,
        primary=primary,
        secondary=secondary,
        identity=ProviderIdentity(email=email, plan=tier, auth_method="oauth"),
    )


def rate_limit_percent(headers) -> float:
    """Percent of the per-minute request limit already consumed."""
    try:
        limit = float(headers.get("X-RateLimit-Limit", ""))
        remaining = float(headers.get("X-RateLimit-Remaining", ""))
    except ValueError:
        return 0.0
    if limit <= 0:
        return 0.0
    return (limit - remaining) / limit * 100


class GeminiCLIStrategy:
    """Fetch Gemini usage with an API key or the Gemini CLI's OAuth tokens."""

    id = "gemini-cli"
    kind = FetchKind.CLI

    MODELS_URL = "https://generativelanguage.googleapis.com/v1/models"
    QUOTA_URL = "https://cloudcode-pa.googleapis.com/v1internal:retrieveUserQuota"
    CODE_ASSIST_URL = "https://cloudcode-pa.googleapis.com/v1internal:loadCodeAssist"
    REQUEST_TIMEOUT = 10.0

    def __init__(self, gemini_dir: Path | None = None) -> None:
        self.gemini_dir = gemini_dir or Path.home() / ".gemini"

    def load_credentials(self) -> GeminiCredentials | None:
        data = read_json_credential(self.gemini_dir / "oauth_creds.json")
        if data is None:
            return None
        return parse_credentials(data)

    def selected_auth_type(self) -> str | None:
        data = read_json_credential(self.gemini_dir / "settings.json") or {}
        security = data.get("security")
        auth = security.get("auth") if isinstance(security, dict) else None
        selected = auth.get("selectedType") if isinstance(auth, dict) else None
        return selected if isinstance(selected, str) else None

    def active_account(self) -> str | None:
        data = read_json_credential(self.gemini_dir / "google_accounts.json") or {}
        active = data.get("active")
        return active if isinstance(active, str) else None

    async def is_available(self, context: FetchContext) -> bool:
        if context.env(*API_KEY_ENV):
            return True
        return self.load_credentials() is not None

    async def fetch(self, context: FetchContext) -> FetchResult:
        if api_key := context.env(*API_KEY_ENV):
            return await self._fetch_with_api_key(api_key)
        return await self._fetch_with_oauth()

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return not is_credential_error(error)

    async def _fetch_with_api_key(self, api_key: str) -> FetchResult:
        # API keys expose only per-minute rate limit headers, no usage.
        async with get_http_client(timeout=self.REQUEST_TIMEOUT) as client:
            response = await client.get(self.MODELS_URL, params={"key": api_key})

        if response.status_code in (401, 403):
            raise ProviderFetchError.invalid_credentials(ProviderID.GEMINI)
        if response.status_code != 200:
            raise ProviderFetchError.parse_error(
                f"HTTP {response.status_code}", ProviderID.GEMINI
            )

        snapshot = UsageSnapshot(
            provider_id=ProviderID.GEMINI,
            primary=RateWindow.create(
                rate_limit_percent(response.headers),
                window_minutes=1,
                resets_at=datetime.now(UTC) + timedelta(minutes=1),
                label="RPM",
            ),
            identity=ProviderIdentity(plan="API Key", auth_method="api-key"),
        )
        return make_result(self, snapshot, "api")

    async def _fetch_with_oauth(self) -> FetchResult:
        credentials = self.load_credentials()
        if credentials is None:
            raise ProviderFetchError.authentication_required(ProviderID.GEMINI)
        if self.selected_auth_type() == "api-key":
            raise ProviderFetchError.parse_error(
                "API key auth configured. Set GEMINI_API_KEY environment variable.",
                ProviderID.GEMINI,
            )
        if credentials.is_expired:
            logger.debug("Gemini OAuth token expired at %s", credentials.expires_at)
            raise ProviderFetchError.authentication_required(ProviderID.GEMINI)

        headers = {
            "Authorization": f"Bearer {credentials.access_token}",
            "Content-Type": "application/json",
        }
        async with get_http_client(timeout=self.REQUEST_TIMEOUT) as client:
            code_assist = await self._load_code_assist(client, headers)
            quotas = await self._retrieve_quota(
                client, headers, code_assist.cloudaicompanion_project
            )

        email = self.active_account() or email_from_id_token(credentials.id_token)
        snapshot = build_oauth_snapshot(quotas, email, code_assist.tier)
        return make_result(self, snapshot, "oauth")

    async def _load_code_assist(self, client, headers: dict) -> CodeAssistResponse:
        body = {"metadata": {"ideType": "GEMINI_CLI", "pluginType": "GEMINI"}}
        response = await client.post(self.CODE_ASSIST_URL, headers=headers, json=body)
        if response.status_code == 401:
            raise ProviderFetchError.invalid_credentials(ProviderID.GEMINI)
        if response.status_code != 200:
            raise ProviderFetchError.parse_error(
                f"HTTP {response.status_code}", ProviderID.GEMINI
            )
        try:
            return msgspec.json.decode(response.content, type=CodeAssistResponse)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise ProviderFetchError.parse_error(
                "Invalid loadCodeAssist response", ProviderID.GEMINI
            ) from e

    async def _retrieve_quota(
        self, client, headers: dict, project: str | None
    ) -> list[ModelQuotaLeft]:
        body = {"project": project} if project else {}
        response = await client.post(self.QUOTA_URL, headers=headers, json=body)
        if response.status_code == 401:
            raise ProviderFetchError.invalid_credentials(ProviderID.GEMINI)
        if response.status_code == 403:
            # No subscription; report as connected without quotas.
            return []
        if response.status_code != 200:
            raise ProviderFetchError.parse_error(
                f"HTTP {response.status_code}", ProviderID.GEMINI
            )
        try:
            quota = msgspec.json.decode(response.content, type=QuotaResponse)
        except (msgspec.DecodeError, msgspec.ValidationError):
            logger.debug("Unreadable retrieveUserQuota response")
            return []
        return lowest_quotas(quota.buckets)
