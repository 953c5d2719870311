"""GitHub CLI strategy for Copilot provider."""

from __future__ import annotations

import logging

import msgspec

from agentquota.core import executor
from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.errors.fetch import CommandError
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderID
from agentquota.models import ProviderIdentity
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import is_credential_error
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)

AUTH_STATUS_TIMEOUT = 10.0


class GitHubUser(msgspec.Struct):
    login: str | None = None
    email: str | None = None


def decode_user(data: bytes | str) -> GitHubUser:
    try:
        return msgspec.json.decode(data, type=GitHubUser)
    except (msgspec.DecodeError, msgspec.ValidationError):
        return GitHubUser()


def plan_from_auth_status(text: str) -> str:
    lowered = text.lower()
    if "enterprise" in lowered:
        return "Enterprise"
    if "business" in lowered:
        return "Business"
    return "Individual"


def connected_snapshot(user: GitHubUser, plan: str, auth_method: str) -> UsageSnapshot:
    """Copilot exposes no personal quota, so a connected account is unlimited."""
    return UsageSnapshot(
        provider_id=ProviderID.COPILOT,
        primary=RateWindow.create(0, window_minutes=0, label="Unlimited"),
        identity=ProviderIdentity(email=user.email, plan=plan, auth_method=auth_method),
        metadata={"user": user.login or "unknown", "status": "active"},
    )


class CopilotCLIStrategy:
    """Fetch Copilot status through an authenticated `gh` CLI."""

    id = "copilot-cli"
    kind = FetchKind.CLI

    COMMAND = "gh"

    async def is_available(self, context: FetchContext) -> bool:
        if executor.find_executable(self.COMMAND) is None:
            return False
        try:
            result = await executor.run_tool(
                self.COMMAND, ["auth", "status"], timeout=AUTH_STATUS_TIMEOUT
            )
        except CommandError as e:
            logger.debug("gh auth status failed: %s", e)
            return False
        return result.is_success

    async def fetch(self, context: FetchContext) -> FetchResult:
        user_result = await executor.run_tool(self.COMMAND, ["api", "user"])
        if not user_result.is_success:
            raise ProviderFetchError.authentication_required(ProviderID.COPILOT)
        user = decode_user(user_result.output)

        plan = "Individual"
        try:
            status = await executor.run_tool(
                self.COMMAND, ["auth", "status"], timeout=AUTH_STATUS_TIMEOUT
            )
        except CommandError as e:
            logger.debug("Skipping plan detection: %s", e)
        else:
            plan = plan_from_auth_status(status.output + status.error_output)

        snapshot = connected_snapshot(user, plan, "gh-cli")
        return make_result(self, snapshot, "gh-cli")

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return not is_credential_error(error)
