"""Gemini (Google AI) provider."""

from agentquota.providers.gemini.cli import GeminiCLIStrategy

__all__ = ["GeminiCLIStrategy"]
