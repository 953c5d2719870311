"""Per-model quota normalization into ranked rate windows.

The local language server reports one remaining fraction per model. Up to
three of those are promoted to the snapshot's primary, secondary and
tertiary windows: a Claude model, a Gemini Pro (low tier) model and a
Gemini Flash model, in that order. When none of those labels are present,
every quota is ranked by remaining percentage, lowest first.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from collections.abc import Sequence
from datetime import UTC
from datetime import datetime

import msgspec

from agentquota.models import ProviderID
from agentquota.models import ProviderIdentity
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.models import clamp_percent

NO_QUOTAS_LABEL = "No quotas"

EPOCH_PATTERN = re.compile(r"[+-]?\d+(\.\d+)?")


class ModelQuota(msgspec.Struct, frozen=True):
    """Remaining usage for one model, before normalization."""

    label: str
    model_id: str
    remaining_fraction: float | None = None  # 0.0-1.0; None counts as exhausted
    reset_time: datetime | None = None

    @property
    def remaining_percent(self) -> float:
        if self.remaining_fraction is None:
            return 0.0
        return clamp_percent(self.remaining_fraction * 100)


def is_claude_without_thinking(label: str) -> bool:
    lower = label.lower()
    return "claude" in lower and "thinking" not in lower


def is_gemini_pro_low(label: str) -> bool:
    lower = label.lower()
    return "pro" in lower and "low" in lower


def is_gemini_flash(label: str) -> bool:
    lower = label.lower()
    return "gemini" in lower and "flash" in lower


PRIORITY_MATCHERS: tuple[Callable[[str], bool], ...] = (
    is_claude_without_thinking,
    is_gemini_pro_low,
    is_gemini_flash,
)


def select_models(models: Sequence[ModelQuota]) -> list[ModelQuota]:
    """Order quotas for display.

    Each priority matcher contributes the first quota it accepts among those
    whose label has not been chosen yet. If no matcher contributes
    anything, all quotas are returned sorted by remaining percentage,
    ascending.
    """
    ordered: list[ModelQuota] = []
    for matcher in PRIORITY_MATCHERS:
        chosen = {m.label for m in ordered}
        match = next(
            (m for m in models if m.label not in chosen and matcher(m.label)), None
        )
        if match is not None:
            ordered.append(match)

    if not ordered:
        ordered = sorted(models, key=lambda m: m.remaining_percent)
    return ordered


def quota_window(quota: ModelQuota) -> RateWindow:
    return RateWindow.create(
        100 - quota.remaining_percent,
        resets_at=quota.reset_time,
        label=quota.label,
    )


def build_windows(
    models: Sequence[ModelQuota],
) -> tuple[RateWindow, RateWindow | None, RateWindow | None]:
    """Return (primary, secondary, tertiary) windows for the quotas."""
    ordered = select_models(models)
    if not ordered:
        return RateWindow.create(0, label=NO_QUOTAS_LABEL), None, None

    windows = [quota_window(q) for q in ordered[:3]]
    windows.extend([None] * (3 - len(windows)))
    return windows[0], windows[1], windows[2]


def build_snapshot(
    models: Sequence[ModelQuota],
    *,
    provider_id: ProviderID = ProviderID.ANTIGRAVITY,
    email: str | None = None,
    plan: str | None = None,
    auth_method: str = "local",
) -> UsageSnapshot:
    """Normalize model quotas into a usage snapshot."""
    primary, secondary, tertiary = build_windows(models)
    return UsageSnapshot(
        provider_id=provider_id,
        primary=primary,
        secondary=secondary,
        tertiary=tertiary,
        identity=ProviderIdentity(email=email, plan=plan, auth_method=auth_method),
    )


def parse_reset_time(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp, falling back to epoch seconds."""
    if not value:
        return None
    text = value.strip()
    # fromisoformat accepts compact digit runs, so bare numbers skip it
    if not EPOCH_PATTERN.fullmatch(text):
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed

    try:
        seconds = float(text)
    except ValueError:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None
