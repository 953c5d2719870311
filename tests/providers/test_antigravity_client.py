"""Tests for the Antigravity loopback RPC client."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock
from unittest.mock import call
from unittest.mock import patch

import httpx
import pytest

from agentquota.errors.fetch import FetchErrorKind
from agentquota.errors.fetch import ProbeError
from agentquota.providers.antigravity import client
from agentquota.providers.antigravity.client import GET_USER_STATUS_PATH
from agentquota.providers.antigravity.client import RequestContext
from agentquota.providers.antigravity.client import check_port
from agentquota.providers.antigravity.client import find_working_port
from agentquota.providers.antigravity.client import make_request
from agentquota.providers.antigravity.client import send_request


class TestSendRequest:
    """Tests for send_request."""

    @pytest.mark.asyncio
    async def test_posts_to_loopback(self, http_mock, make_response):
        factory, http_client = http_mock(post=make_response(200, content=b'{"ok": 1}'))

        with patch.object(client, "get_http_client", factory):
            body = await send_request(
                "https", 42100, GET_USER_STATUS_PATH, {"a": 1}, "tok", timeout=3.0
            )

        assert body == b'{"ok": 1}'
        factory.assert_called_once_with(timeout=3.0, verify=False)
        url = http_client.post.call_args.args[0]
        assert url == f"https://127.0.0.1:42100{GET_USER_STATUS_PATH}"
        kwargs = http_client.post.call_args.kwargs
        assert kwargs["headers"]["X-Codeium-Csrf-Token"] == "tok"
        assert kwargs["headers"]["Connect-Protocol-Version"] == "1"
        assert json.loads(kwargs["content"]) == {"a": 1}

    @pytest.mark.asyncio
    async def test_non_200(self, http_mock, make_response):
        factory, _ = http_mock(post=make_response(500))

        with patch.object(client, "get_http_client", factory):
            with pytest.raises(ProbeError) as exc_info:
                await send_request("http", 1, "/x", {}, "tok")

        assert exc_info.value.kind == FetchErrorKind.API_ERROR
        assert exc_info.value.detail == "HTTP 500"

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, http_mock):
        factory, _ = http_mock(post=httpx.ConnectError("refused"))

        with patch.object(client, "get_http_client", factory):
            with pytest.raises(httpx.ConnectError):
                await send_request("https", 1, "/x", {}, "tok")


class TestMakeRequest:
    """Tests for make_request transport fallback."""

    @pytest.mark.asyncio
    async def test_https_success(self):
        send = AsyncMock(return_value=b"data")
        context = RequestContext(https_port=100, csrf_token="tok", http_port=200)

        with patch.object(client, "send_request", send):
            assert await make_request("/p", {}, context) == b"data"

        send.assert_awaited_once()
        assert send.call_args.args[:2] == ("https", 100)

    @pytest.mark.asyncio
    async def test_falls_back_to_http_port(self):
        """A failed HTTPS call retries over HTTP on the extension port."""
        send = AsyncMock(side_effect=[httpx.ConnectError("tls"), b"plain"])
        context = RequestContext(https_port=100, csrf_token="tok", http_port=200)

        with patch.object(client, "send_request", send):
            assert await make_request("/p", {}, context, timeout=2.0) == b"plain"

        assert send.call_args_list == [
            call("https", 100, "/p", {}, "tok", 2.0),
            call("http", 200, "/p", {}, "tok", 2.0),
        ]

    @pytest.mark.asyncio
    async def test_no_fallback_without_http_port(self):
        send = AsyncMock(side_effect=ProbeError.api_error("HTTP 500"))
        context = RequestContext(https_port=100, csrf_token="tok")

        with patch.object(client, "send_request", send):
            with pytest.raises(ProbeError):
                await make_request("/p", {}, context)

        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_fallback_to_same_port(self):
        send = AsyncMock(side_effect=httpx.ConnectError("tls"))
        context = RequestContext(https_port=100, csrf_token="tok", http_port=100)

        with patch.object(client, "send_request", send):
            with pytest.raises(httpx.ConnectError):
                await make_request("/p", {}, context)

        send.assert_awaited_once()


class TestCheckPort:
    """Tests for check_port."""

    @pytest.mark.asyncio
    async def test_https_answers(self):
        send = AsyncMock(return_value=b"{}")

        with patch.object(client, "send_request", send):
            assert await check_port(100, "tok") is True

        assert send.call_args.args[0] == "https"

    @pytest.mark.asyncio
    async def test_http_answers(self):
        send = AsyncMock(side_effect=[httpx.ConnectError("tls"), b"{}"])

        with patch.object(client, "send_request", send):
            assert await check_port(100, "tok") is True

        assert send.call_args.args[0] == "http"

    @pytest.mark.asyncio
    async def test_neither(self):
        send = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with patch.object(client, "send_request", send):
            assert await check_port(100, "tok") is False

        assert send.await_count == 2


class TestFindWorkingPort:
    """Tests for find_working_port."""

    @pytest.mark.asyncio
    async def test_first_ascending(self):
        """Ports are tried in ascending order; the first answer wins."""
        checked = []

        async def fake_check(port, token, timeout):
            checked.append(port)
            return port >= 200

        with patch.object(client, "check_port", fake_check):
            port = await find_working_port([300, 100, 200], "tok")

        assert port == 200
        assert checked == [100, 200]

    @pytest.mark.asyncio
    async def test_none_work(self):
        with patch.object(client, "check_port", AsyncMock(return_value=False)):
            with pytest.raises(ProbeError) as exc_info:
                await find_working_port([1, 2], "tok")

        assert exc_info.value.kind == FetchErrorKind.PORT_DETECTION_FAILED
        assert "no working API port" in str(exc_info.value)
