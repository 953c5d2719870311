"""Claude (Anthropic) provider."""

from agentquota.providers.claude.cli import ClaudeCLIStrategy
from agentquota.providers.claude.oauth import ClaudeOAuthStrategy
from agentquota.providers.claude.web import ClaudeWebStrategy

__all__ = ["ClaudeOAuthStrategy", "ClaudeCLIStrategy", "ClaudeWebStrategy"]
