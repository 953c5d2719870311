"""Antigravity provider: quotas read from the local language server."""

from agentquota.providers.antigravity.strategy import AntigravityLocalStrategy

__all__ = ["AntigravityLocalStrategy"]
