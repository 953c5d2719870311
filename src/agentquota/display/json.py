"""JSON output utilities for agentquota."""

from __future__ import annotations

import sys

import msgspec

from agentquota.errors.classify import classify_exception
from agentquota.errors.types import ErrorReport
from agentquota.models import ProviderID
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.strategies.base import FetchAttempt
from agentquota.strategies.base import FetchOutcome

__all__ = [
    "ErrorResponse",
    "ErrorData",
    "from_error_report",
    "window_to_dict",
    "snapshot_to_dict",
    "attempt_to_dict",
    "outcome_to_dict",
    "outcomes_to_dict",
    "encode_json",
    "output_json",
    "output_json_pretty",
]


class ErrorData(msgspec.Struct, frozen=True, omit_defaults=True):
    """Error data with category, severity, and remediation."""

    message: str
    category: str
    severity: str
    timestamp: str
    provider: str | None = None
    remediation: str | None = None
    details: dict | None = None


class ErrorResponse(msgspec.Struct, frozen=True):
    error: ErrorData


def from_error_report(report: ErrorReport) -> ErrorResponse:
    """Create an ErrorResponse from a classified ErrorReport."""
    return ErrorResponse(
        error=ErrorData(
            message=report.message,
            category=report.category.value,
            severity=report.severity.value,
            timestamp=report.timestamp.isoformat(),
            provider=report.provider,
            remediation=report.remediation,
            details=report.details,
        )
    )


def window_to_dict(window: RateWindow) -> dict:
    return {
        "label": window.label,
        "used_percent": window.used_percent,
        "remaining_percent": window.remaining_percent,
        "window_minutes": window.window_minutes,
        "resets_at": window.resets_at.isoformat() if window.resets_at else None,
        "reset_description": window.reset_description,
    }


def snapshot_to_dict(snapshot: UsageSnapshot) -> dict:
    """Flatten a snapshot into JSON-ready primitives."""
    data = {
        "provider": snapshot.provider_id.value,
        "updated_at": snapshot.updated_at.isoformat(),
        "primary": window_to_dict(snapshot.primary) if snapshot.primary else None,
        "secondary": window_to_dict(snapshot.secondary) if snapshot.secondary else None,
        "tertiary": window_to_dict(snapshot.tertiary) if snapshot.tertiary else None,
        "identity": msgspec.to_builtins(snapshot.identity) if snapshot.identity else None,
        "cost": msgspec.to_builtins(snapshot.cost) if snapshot.cost else None,
    }
    if snapshot.account_id:
        data["account_id"] = snapshot.account_id
    if snapshot.metadata:
        data["metadata"] = dict(snapshot.metadata)
    return data


def attempt_to_dict(attempt: FetchAttempt) -> dict:
    return {
        "strategy": attempt.strategy_id,
        "kind": attempt.kind.value,
        "available": attempt.was_available,
        "error": str(attempt.error) if attempt.error else None,
        "duration_ms": round(attempt.duration_ms, 1),
    }


def outcome_to_dict(outcome: FetchOutcome) -> dict:
    """Serialize one outcome, including the attempt trail.

    Failures carry a classified error with remediation instead of usage.
    """
    data: dict = {
        "provider": outcome.provider_id.value,
        "success": outcome.is_success,
        "attempts": [attempt_to_dict(a) for a in outcome.attempts],
    }
    if outcome.result is not None:
        data["source"] = outcome.result.source_label
        data["strategy"] = outcome.result.strategy_id
        data["usage"] = snapshot_to_dict(outcome.result.usage)
    elif outcome.error is not None:
        report = classify_exception(outcome.error, outcome.provider_id.value)
        data.update(msgspec.to_builtins(from_error_report(report)))
    return data


def outcomes_to_dict(outcomes: dict[ProviderID, FetchOutcome]) -> dict:
    return {
        "providers": {pid.value: outcome_to_dict(o) for pid, o in outcomes.items()},
    }


def encode_json(data: object) -> bytes:
    """Encode data as JSON bytes."""
    return msgspec.json.encode(data)


def output_json(data: object) -> None:
    """Output data as compact JSON to stdout."""
    sys.stdout.write(encode_json(data).decode())
    sys.stdout.write("\n")


def output_json_pretty(data: object, indent: int = 2) -> None:
    """Output data as pretty-printed JSON to stdout."""
    sys.stdout.write(msgspec.json.format(encode_json(data), indent=indent).decode())
    sys.stdout.write("\n")
