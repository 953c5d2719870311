"""Copilot (GitHub) provider."""

from agentquota.providers.copilot.api import CopilotAPIStrategy
from agentquota.providers.copilot.cli import CopilotCLIStrategy

__all__ = ["CopilotCLIStrategy", "CopilotAPIStrategy"]
