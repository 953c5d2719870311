"""HTTP client factory for agentquota."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from agentquota.config.settings import get_config


def get_timeout_config() -> httpx.Timeout:
    """Get timeout configuration from settings."""
    config = get_config()
    timeout = config.fetch.timeout
    return httpx.Timeout(timeout, connect=10.0)


@asynccontextmanager
async def get_http_client(
    timeout: float | httpx.Timeout | None = None,
    verify: bool = True,
) -> AsyncIterator[httpx.AsyncClient]:
    """Create a client scoped to one call.

    No connection is reused across calls; the client is closed on every
    exit path.

    Usage:
        async with get_http_client() as client:
            response = await client.get(...)
    """
    client = httpx.AsyncClient(
        timeout=timeout if timeout is not None else get_timeout_config(),
        follow_redirects=True,
        verify=verify,
    )
    try:
        yield client
    finally:
        await client.aclose()
