"""HTTP response checking for the remote fetch strategies.

Converts non-success responses into ProviderFetchError values, using the
status-to-kind table in errors/types.py.
"""

from __future__ import annotations

import httpx

from agentquota.errors.fetch import FetchErrorKind
from agentquota.errors.fetch import ProviderFetchError
from agentquota.errors.types import fetch_kind_for_status
from agentquota.models import ProviderID


def extract_error_message(response: httpx.Response) -> str:
    """Extract a short error detail from a response body.

    Looks for common error fields in JSON bodies and falls back to the
    leading part of the raw text.
    """
    try:
        data = response.json()
    except ValueError:
        text = response.text or ""
        return text[:200] if text else f"HTTP {response.status_code}"

    if isinstance(data, dict):
        for key in ("error_description", "message", "detail"):
            if isinstance(data.get(key), str):
                return data[key]
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error

    return f"HTTP {response.status_code}"


def get_retry_after(response: httpx.Response) -> float | None:
    """Parse the Retry-After header as seconds."""
    raw = response.headers.get("Retry-After")
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


def raise_for_status(response: httpx.Response, provider: ProviderID) -> None:
    """Raise a ProviderFetchError for any non-2xx response."""
    status = response.status_code
    if 200 <= status < 300:
        return

    match fetch_kind_for_status(status):
        case FetchErrorKind.INVALID_CREDENTIALS:
            raise ProviderFetchError.invalid_credentials(provider)
        case FetchErrorKind.RATE_LIMITED:
            raise ProviderFetchError.rate_limited(provider, get_retry_after(response))
        case _:
            raise ProviderFetchError.network_error(
                f"HTTP {status}: {extract_error_message(response)}", provider
            )
