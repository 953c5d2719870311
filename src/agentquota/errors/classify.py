"""Exception classification for structured error reporting."""

from __future__ import annotations

import asyncio
import json

import httpx

from agentquota.errors.fetch import CommandError
from agentquota.errors.fetch import CommandErrorKind
from agentquota.errors.fetch import ProviderFetchError
from agentquota.errors.http import extract_error_message
from agentquota.errors.messages import get_kind_remediation
from agentquota.errors.messages import get_provider_remediation
from agentquota.errors.types import ErrorCategory
from agentquota.errors.types import ErrorReport
from agentquota.errors.types import ErrorSeverity
from agentquota.errors.types import classify_fetch_kind
from agentquota.errors.types import fetch_kind_for_status


def classify_fetch_error(
    e: ProviderFetchError,
    provider_id: str | None = None,
) -> ErrorReport:
    """Classify a ProviderFetchError into a structured report."""
    provider = provider_id or (e.provider.value if e.provider else None)
    category, severity = classify_fetch_kind(e.kind)

    remediation = None
    if provider is not None:
        remediation = get_kind_remediation(provider, e.kind) or get_provider_remediation(
            provider, category
        )

    details: dict = {"kind": e.kind.value}
    if e.retry_after is not None:
        details["retry_after"] = e.retry_after

    return ErrorReport(
        message=str(e),
        category=category,
        severity=severity,
        provider=provider,
        remediation=remediation,
        details=details,
    )


def classify_http_status_error(
    error: httpx.HTTPStatusError,
    provider_id: str | None = None,
) -> ErrorReport:
    """Classify HTTP status errors into structured reports."""
    status = error.response.status_code
    kind = fetch_kind_for_status(status)
    category, severity = classify_fetch_kind(kind)
    detail = extract_error_message(error.response)

    return ErrorReport(
        message=f"HTTP {status}: {detail}",
        category=category,
        severity=severity,
        provider=provider_id,
        remediation=(
            get_provider_remediation(provider_id, category)
            if provider_id
            else None
        ),
        details={"status_code": status, "kind": kind.value, "response": detail},
    )


def classify_exception(
    e: BaseException,
    provider_id: str | None = None,
) -> ErrorReport:
    """Classify any exception into a structured report."""

    if isinstance(e, ProviderFetchError):
        return classify_fetch_error(e, provider_id)

    if isinstance(e, CommandError):
        if e.kind == CommandErrorKind.TIMEOUT:
            category, severity = ErrorCategory.NETWORK, ErrorSeverity.TRANSIENT
        else:
            category, severity = ErrorCategory.CONFIGURATION, ErrorSeverity.RECOVERABLE
        return ErrorReport(
            message=str(e),
            category=category,
            severity=severity,
            provider=provider_id,
            details={"kind": e.kind.value},
        )

    # Network errors - httpx specific
    if isinstance(e, httpx.TimeoutException):
        return ErrorReport(
            message="Request timed out",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.TRANSIENT,
            provider=provider_id,
            remediation="Check your network connection and try again.",
        )

    if isinstance(e, httpx.ConnectError):
        return ErrorReport(
            message="Failed to connect to server",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.TRANSIENT,
            provider=provider_id,
            remediation="Check your internet connection. The provider may be down.",
        )

    if isinstance(e, httpx.HTTPStatusError):
        return classify_http_status_error(e, provider_id)

    if isinstance(e, httpx.HTTPError):
        return ErrorReport(
            message=f"Network error: {e}",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.TRANSIENT,
            provider=provider_id,
        )

    # Parse errors
    if isinstance(e, json.JSONDecodeError):
        return ErrorReport(
            message="Failed to parse response",
            category=ErrorCategory.PARSE,
            severity=ErrorSeverity.RECOVERABLE,
            provider=provider_id,
            details={"error": str(e)},
        )

    if isinstance(e, (KeyError, ValueError, TypeError)):
        return ErrorReport(
            message=f"Invalid response format: {e}",
            category=ErrorCategory.PARSE,
            severity=ErrorSeverity.RECOVERABLE,
            provider=provider_id,
        )

    if isinstance(e, asyncio.TimeoutError):
        return ErrorReport(
            message="Operation timed out",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.TRANSIENT,
            provider=provider_id,
            remediation="Try again. If the issue persists, check provider status.",
        )

    # File errors
    if isinstance(e, FileNotFoundError):
        filename = getattr(e, "filename", None)
        return ErrorReport(
            message=f"File not found: {filename}" if filename else "File not found",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.RECOVERABLE,
            provider=provider_id,
        )

    if isinstance(e, PermissionError):
        filename = getattr(e, "filename", None)
        return ErrorReport(
            message=f"Permission denied: {filename}"
            if filename
            else "Permission denied",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.FATAL,
            provider=provider_id,
            remediation="Check file permissions for the credential file.",
        )

    # Unknown
    return ErrorReport(
        message=str(e),
        category=ErrorCategory.UNKNOWN,
        severity=ErrorSeverity.RECOVERABLE,
        provider=provider_id,
        details={"type": type(e).__name__},
    )
