"""Pytest configuration and shared fixtures for agentquota tests."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock
from unittest.mock import MagicMock
from unittest.mock import patch

import httpx
import pytest

from agentquota.config import settings as settings_module
from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.core.context import FetchRuntime
from agentquota.models import ProviderID
from agentquota.models import ProviderIdentity
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.strategies.base import FetchResult


@pytest.fixture
def utc_now() -> datetime:
    """Fixed UTC datetime for consistent testing."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def fetch_context() -> FetchContext:
    """CLI context with an empty environment."""
    return FetchContext(runtime=FetchRuntime.CLI, environment={})


def _make_context(**kwargs) -> FetchContext:
    kwargs.setdefault("runtime", FetchRuntime.CLI)
    kwargs.setdefault("environment", {})
    return FetchContext(**kwargs)


@pytest.fixture
def make_context():
    """Factory for CLI contexts; environment defaults to empty."""
    return _make_context


@pytest.fixture
def sample_snapshot(utc_now: datetime) -> UsageSnapshot:
    """Claude snapshot with session and weekly windows."""
    return UsageSnapshot(
        provider_id=ProviderID.CLAUDE,
        primary=RateWindow.create(
            25, window_minutes=300, resets_at=utc_now + timedelta(hours=3), label="Session"
        ),
        secondary=RateWindow.create(
            60, window_minutes=10080, resets_at=utc_now + timedelta(days=3), label="Weekly"
        ),
        updated_at=utc_now,
        identity=ProviderIdentity(email="user@example.com", plan="pro", auth_method="oauth"),
    )


@pytest.fixture
def sample_result(sample_snapshot: UsageSnapshot) -> FetchResult:
    return FetchResult(
        usage=sample_snapshot,
        source_label="oauth",
        strategy_id="claude-oauth",
        strategy_kind=FetchKind.OAUTH,
    )


def _make_response(
    status_code: int = 200,
    json: object | None = None,
    content: bytes | None = None,
    headers: dict | None = None,
) -> httpx.Response:
    """Real httpx.Response so status, headers and body behave normally."""
    request = httpx.Request("GET", "https://example.test")
    if json is not None:
        return httpx.Response(status_code, json=json, headers=headers, request=request)
    return httpx.Response(
        status_code, content=content or b"", headers=headers, request=request
    )


def _mock_http_client(
    get: list[httpx.Response] | httpx.Response | None = None,
    post: list[httpx.Response] | httpx.Response | Exception | None = None,
) -> tuple[MagicMock, MagicMock]:
    """Build a stand-in for get_http_client.

    Returns (factory, client); patch the factory over a module's
    get_http_client and inspect calls on the client.
    """
    client = MagicMock(spec=httpx.AsyncClient)
    client.get = AsyncMock()
    client.post = AsyncMock()
    for method, value in ((client.get, get), (client.post, post)):
        if isinstance(value, list):
            method.side_effect = value
        elif isinstance(value, Exception):
            method.side_effect = value
        elif value is not None:
            method.return_value = value

    @asynccontextmanager
    async def fake_client(*args, **kwargs):
        yield client

    factory = MagicMock(side_effect=fake_client)
    return factory, client


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Temporary config directory with a fresh settings cache."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    with patch.dict("os.environ", {"AGENTQUOTA_CONFIG_DIR": str(config_dir)}):
        settings_module._config = None
        yield config_dir
        settings_module._config = None


@pytest.fixture
def sample_config_dict() -> dict:
    """Sample configuration dictionary."""
    return {
        "enabled_providers": ["claude", "codex"],
        "log_level": "INFO",
        "fetch": {
            "timeout": 20.0,
            "max_concurrent": 3,
            "probe_timeout": 4.0,
        },
        "providers": {
            "claude": {"source": "oauth"},
            "cursor": {
                "enabled": False,
                "cookie_source": "manual",
                "cookie_header": "WorkosCursorSessionToken=abc",
            },
        },
    }


@pytest.fixture
def make_response():
    """Factory for httpx responses."""
    return _make_response


@pytest.fixture
def http_mock():
    """Factory for get_http_client stand-ins; see _mock_http_client."""
    return _mock_http_client
