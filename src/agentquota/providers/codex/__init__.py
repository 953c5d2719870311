"""Codex (OpenAI/ChatGPT) provider."""

from agentquota.providers.codex.cli import CodexCLIStrategy

__all__ = ["CodexCLIStrategy"]
