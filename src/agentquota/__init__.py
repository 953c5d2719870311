"""agentquota: Track rate-limit quotas across AI coding assistants."""

from __future__ import annotations

__version__ = "0.1.0"

from agentquota.models import ProviderCostInfo
from agentquota.models import ProviderID
from agentquota.models import ProviderIdentity
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.models import format_reset_countdown
from agentquota.models import usage_to_color

__all__ = [
    "__version__",
    "ProviderID",
    "RateWindow",
    "ProviderCostInfo",
    "ProviderIdentity",
    "UsageSnapshot",
    "format_reset_countdown",
    "usage_to_color",
]


def main() -> None:
    """Entry point for the agentquota CLI."""
    from agentquota.cli.app import run_app

    run_app()
