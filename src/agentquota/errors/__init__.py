"""Error handling for agentquota."""

from agentquota.errors.classify import (
    classify_exception,
    classify_fetch_error,
    classify_http_status_error,
)
from agentquota.errors.fetch import (
    CommandError,
    CommandErrorKind,
    FetchErrorKind,
    ProbeError,
    ProviderFetchError,
)
from agentquota.errors.http import (
    extract_error_message,
    get_retry_after,
    raise_for_status,
)
from agentquota.errors.messages import (
    REMEDIATION_TEMPLATES,
    get_kind_remediation,
    get_provider_remediation,
)
from agentquota.errors.types import (
    FETCH_KIND_CLASSIFICATION,
    HTTP_STATUS_KINDS,
    ErrorCategory,
    ErrorReport,
    ErrorSeverity,
    classify_fetch_kind,
    fetch_kind_for_status,
)

__all__ = [
    # Exceptions
    "ProviderFetchError",
    "ProbeError",
    "FetchErrorKind",
    "CommandError",
    "CommandErrorKind",
    # Core types
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorReport",
    "FETCH_KIND_CLASSIFICATION",
    "HTTP_STATUS_KINDS",
    # Classification functions
    "classify_fetch_kind",
    "fetch_kind_for_status",
    "classify_exception",
    "classify_fetch_error",
    "classify_http_status_error",
    # HTTP utilities
    "raise_for_status",
    "extract_error_message",
    "get_retry_after",
    # Message templates
    "REMEDIATION_TEMPLATES",
    "get_kind_remediation",
    "get_provider_remediation",
]
