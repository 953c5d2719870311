"""Local probe strategy for Antigravity."""

from __future__ import annotations

import logging

from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.errors.fetch import CommandError
from agentquota.errors.fetch import ProviderFetchError
from agentquota.providers.antigravity import client
from agentquota.providers.antigravity import process
from agentquota.providers.antigravity.parsing import parse_command_model_response
from agentquota.providers.antigravity.parsing import parse_user_status_response
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)

SOURCE_LABEL = "local"


class AntigravityLocalStrategy:
    """Fetch Antigravity quotas from its running language server.

    Finds the language server process, reads its CSRF token from the
    command line, finds a listening port that answers, then asks it for
    user status (or, failing that, the model configs).
    """

    id = "antigravity-local"
    kind = FetchKind.LOCAL_PROBE

    def __init__(self, timeout: float = client.REQUEST_TIMEOUT) -> None:
        self.timeout = timeout

    async def is_available(self, context: FetchContext) -> bool:
        return await process.language_server_listed()

    async def fetch(self, context: FetchContext) -> FetchResult:
        info = await process.detect_process_info(self.timeout)
        ports = await process.listening_ports(info.pid, self.timeout)
        port = await client.find_working_port(ports, info.csrf_token, self.timeout)

        request_context = client.RequestContext(
            https_port=port,
            csrf_token=info.csrf_token,
            http_port=info.extension_port,
        )

        try:
            data = await client.make_request(
                client.GET_USER_STATUS_PATH,
                client.default_request_body(),
                request_context,
                self.timeout,
            )
            snapshot = parse_user_status_response(data)
        except Exception as e:
            logger.debug("GetUserStatus failed (%s), trying GetCommandModelConfigs", e)
            data = await client.make_request(
                client.GET_COMMAND_MODEL_CONFIGS_PATH,
                client.default_request_body(),
                request_context,
                self.timeout,
            )
            snapshot = parse_command_model_response(data)

        return make_result(self, snapshot, SOURCE_LABEL)

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return False

    async def is_running(self) -> bool:
        """Whether a language server with a usable token is running."""
        try:
            await process.detect_process_info(self.timeout)
        except (ProviderFetchError, CommandError):
            return False
        return True
