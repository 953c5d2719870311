"""Error categories and the classification of fetch error kinds.

Every FetchErrorKind a strategy can raise maps to one category and one
severity. The category picks the remediation text and the CLI exit code;
the severity tells the reader whether retrying is worthwhile.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

import msgspec

from agentquota.errors.fetch import FetchErrorKind


class ErrorCategory(StrEnum):
    """What part of the acquisition went wrong."""

    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    PROVIDER = "provider"
    PARSE = "parse"
    CONFIGURATION = "configuration"
    NOT_RUNNING = "not_running"
    UNKNOWN = "unknown"


class ErrorSeverity(StrEnum):
    """Whether an error is worth retrying."""

    FATAL = "fatal"
    RECOVERABLE = "recoverable"
    TRANSIENT = "transient"


class ErrorReport(msgspec.Struct, frozen=True):
    """Structured error with category and remediation, for presentation."""

    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    provider: str | None = None
    remediation: str | None = None
    details: dict | None = None
    timestamp: datetime = msgspec.field(
        default_factory=lambda: datetime.now().astimezone()
    )


FETCH_KIND_CLASSIFICATION: dict[FetchErrorKind, tuple[ErrorCategory, ErrorSeverity]] = {
    FetchErrorKind.NO_AVAILABLE_STRATEGY: (ErrorCategory.CONFIGURATION, ErrorSeverity.RECOVERABLE),
    FetchErrorKind.AUTHENTICATION_REQUIRED: (ErrorCategory.AUTHENTICATION, ErrorSeverity.RECOVERABLE),
    FetchErrorKind.INVALID_CREDENTIALS: (ErrorCategory.AUTHENTICATION, ErrorSeverity.RECOVERABLE),
    FetchErrorKind.NETWORK_ERROR: (ErrorCategory.NETWORK, ErrorSeverity.TRANSIENT),
    FetchErrorKind.PARSE_ERROR: (ErrorCategory.PARSE, ErrorSeverity.RECOVERABLE),
    FetchErrorKind.TIMEOUT: (ErrorCategory.NETWORK, ErrorSeverity.TRANSIENT),
    FetchErrorKind.RATE_LIMITED: (ErrorCategory.RATE_LIMITED, ErrorSeverity.TRANSIENT),
    FetchErrorKind.COMMAND_FAILED: (ErrorCategory.CONFIGURATION, ErrorSeverity.RECOVERABLE),
    FetchErrorKind.API_ERROR: (ErrorCategory.PROVIDER, ErrorSeverity.TRANSIENT),
    # Local language server discovery
    FetchErrorKind.NOT_RUNNING: (ErrorCategory.NOT_RUNNING, ErrorSeverity.RECOVERABLE),
    FetchErrorKind.MISSING_AUTH_TOKEN: (ErrorCategory.AUTHENTICATION, ErrorSeverity.RECOVERABLE),
    FetchErrorKind.PORT_DETECTION_FAILED: (ErrorCategory.NETWORK, ErrorSeverity.TRANSIENT),
    FetchErrorKind.PARSE_FAILED: (ErrorCategory.PARSE, ErrorSeverity.RECOVERABLE),
}

# Statuses the remote strategies tell apart; anything else non-2xx is a
# network error.
HTTP_STATUS_KINDS: dict[int, FetchErrorKind] = {
    401: FetchErrorKind.INVALID_CREDENTIALS,
    403: FetchErrorKind.INVALID_CREDENTIALS,
    429: FetchErrorKind.RATE_LIMITED,
}


def classify_fetch_kind(kind: FetchErrorKind) -> tuple[ErrorCategory, ErrorSeverity]:
    """Return the (category, severity) pair for a fetch error kind."""
    return FETCH_KIND_CLASSIFICATION[kind]


def fetch_kind_for_status(status_code: int) -> FetchErrorKind:
    """Map a non-success HTTP status to the fetch error kind it raises."""
    return HTTP_STATUS_KINDS.get(status_code, FetchErrorKind.NETWORK_ERROR)
