"""Loopback RPC client for the Antigravity language server.

The language server serves a Connect-style JSON API on 127.0.0.1 with a
self-signed certificate, so certificate verification is disabled for these
requests. The host is fixed to the loopback address.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
import msgspec

from agentquota.core.http import get_http_client
from agentquota.errors.fetch import ProbeError
from agentquota.errors.fetch import ProviderFetchError

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
REQUEST_TIMEOUT = 8.0

SERVICE_PREFIX = "/exa.language_server_pb.LanguageServerService"
GET_USER_STATUS_PATH = f"{SERVICE_PREFIX}/GetUserStatus"
GET_COMMAND_MODEL_CONFIGS_PATH = f"{SERVICE_PREFIX}/GetCommandModelConfigs"
GET_UNLEASH_DATA_PATH = f"{SERVICE_PREFIX}/GetUnleashData"

# Errors that make a port or transport worth skipping
REQUEST_ERRORS = (httpx.HTTPError, ProviderFetchError)


class RequestContext(msgspec.Struct, frozen=True):
    """Where and how to reach a validated language server."""

    https_port: int
    csrf_token: str
    http_port: int | None = None


def default_request_body() -> dict:
    return {
        "metadata": {
            "ideName": "antigravity",
            "extensionName": "antigravity",
            "ideVersion": "unknown",
            "locale": "en",
        }
    }


def unleash_request_body() -> dict:
    return {
        "context": {
            "properties": {
                "devMode": "false",
                "extensionVersion": "unknown",
                "hasAnthropicModelAccess": "true",
                "ide": "antigravity",
                "ideVersion": "unknown",
                "installationId": "agentquota",
                "language": "UNSPECIFIED",
                "os": "macos",
                "requestedModelId": "MODEL_UNSPECIFIED",
            }
        }
    }


async def send_request(
    scheme: str,
    port: int,
    path: str,
    body: dict,
    csrf_token: str,
    timeout: float = REQUEST_TIMEOUT,
) -> bytes:
    """POST one RPC to the loopback server and return the raw body.

    Raises:
        ProbeError: api_error for any non-200 status.
        httpx.HTTPError: On connection or TLS failures.
    """
    url = f"{scheme}://{LOOPBACK_HOST}:{port}{path}"
    payload = msgspec.json.encode(body)
    headers = {
        "Content-Type": "application/json",
        "Connect-Protocol-Version": "1",
        "X-Codeium-Csrf-Token": csrf_token,
    }

    async with get_http_client(timeout=timeout, verify=False) as client:
        response = await client.post(url, content=payload, headers=headers)

    if response.status_code != 200:
        raise ProbeError.api_error(f"HTTP {response.status_code}")
    return response.content


async def make_request(
    path: str,
    body: dict,
    context: RequestContext,
    timeout: float = REQUEST_TIMEOUT,
) -> bytes:
    """Send an RPC over HTTPS, falling back to plain HTTP on the extension port."""
    try:
        return await send_request(
            "https", context.https_port, path, body, context.csrf_token, timeout
        )
    except REQUEST_ERRORS as e:
        http_port = context.http_port
        if http_port is None or http_port == context.https_port:
            raise
        logger.debug(
            "HTTPS request to port %d failed (%s), retrying over HTTP on port %d",
            context.https_port,
            e,
            http_port,
        )
        return await send_request(
            "http", http_port, path, body, context.csrf_token, timeout
        )


async def check_port(
    port: int, csrf_token: str, timeout: float = REQUEST_TIMEOUT
) -> bool:
    """Whether the port answers GetUserStatus over HTTPS or HTTP."""
    for scheme in ("https", "http"):
        try:
            await send_request(
                scheme,
                port,
                GET_USER_STATUS_PATH,
                default_request_body(),
                csrf_token,
                timeout,
            )
        except REQUEST_ERRORS as e:
            logger.debug("Port %d did not answer over %s: %s", port, scheme, e)
            continue
        return True
    return False


async def find_working_port(
    ports: Sequence[int], csrf_token: str, timeout: float = REQUEST_TIMEOUT
) -> int:
    """Return the first port, in ascending order, that answers the probe."""
    for port in sorted(ports):
        if await check_port(port, csrf_token, timeout):
            logger.debug("Using language server port %d", port)
            return port
    raise ProbeError.port_detection_failed("no working API port found")
