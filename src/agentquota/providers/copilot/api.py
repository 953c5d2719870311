"""GitHub API token strategy for Copilot provider."""

from __future__ import annotations

from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.core.http import get_http_client
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderID
from agentquota.providers.copilot.cli import connected_snapshot
from agentquota.providers.copilot.cli import decode_user
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import make_result

TOKEN_ENV = ("GITHUB_TOKEN", "GH_TOKEN")


class CopilotAPIStrategy:
    """Fetch Copilot status with a GitHub token from the environment."""

    id = "copilot-api"
    kind = FetchKind.API_TOKEN

    USER_URL = "https://api.github.com/user"

    def token(self, context: FetchContext) -> str | None:
        if context.settings is not None and context.settings.api_token:
            return context.settings.api_token
        return context.env(*TOKEN_ENV)

    async def is_available(self, context: FetchContext) -> bool:
        return self.token(context) is not None

    async def fetch(self, context: FetchContext) -> FetchResult:
        token = self.token(context)
        if token is None:
            raise ProviderFetchError.authentication_required(ProviderID.COPILOT)

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        async with get_http_client() as client:
            response = await client.get(self.USER_URL, headers=headers)

        if response.status_code != 200:
            raise ProviderFetchError.invalid_credentials(ProviderID.COPILOT)

        snapshot = connected_snapshot(decode_user(response.content), "Individual", "api-token")
        return make_result(self, snapshot, "api")

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return True
