"""Provider-specific remediation text for fetch errors."""

from __future__ import annotations

from agentquota.errors.fetch import FetchErrorKind
from agentquota.errors.types import ErrorCategory


REMEDIATION_TEMPLATES: dict[str, dict[str, str]] = {
    "claude": {
        "authentication_required": (
            "No usable Claude credentials found.\n"
            "Run '[cyan]claude[/cyan]' and log in, or set "
            "[cyan]CLAUDE_SESSION_KEY[/cyan] to your claude.ai session key."
        ),
        "invalid_credentials": (
            "Claude session expired or invalid.\n"
            "Run '[cyan]claude[/cyan]' to log in again."
        ),
        "command_failed": (
            "Claude CLI not usable.\n"
            "Install it from: [cyan]https://claude.ai/download[/cyan]"
        ),
    },
    "codex": {
        "authentication_required": (
            "No Codex credentials found.\n"
            "Run '[cyan]codex login[/cyan]' to create ~/.codex/auth.json."
        ),
        "invalid_credentials": (
            "Codex token rejected. Your account may not have a ChatGPT Plus/Pro "
            "subscription, or the login expired.\n"
            "Run '[cyan]codex login[/cyan]' to refresh it."
        ),
    },
    "copilot": {
        "authentication_required": (
            "No GitHub session found.\n"
            "Run '[cyan]gh auth login[/cyan]' or set [cyan]GITHUB_TOKEN[/cyan]."
        ),
        "invalid_credentials": (
            "GitHub token rejected.\n"
            "Run '[cyan]gh auth refresh[/cyan]' or replace [cyan]GITHUB_TOKEN[/cyan]."
        ),
    },
    "cursor": {
        "authentication_required": (
            "No Cursor session found.\n"
            "Log into [cyan]cursor.com[/cyan] and set "
            "[cyan]providers.cursor.cookie_header[/cyan] in config.toml."
        ),
        "invalid_credentials": (
            "Cursor session expired.\n"
            "Log into cursor.com again and update the stored cookie header."
        ),
    },
    "gemini": {
        "authentication_required": (
            "No Gemini credentials found.\n"
            "Run '[cyan]gemini[/cyan]' to log in, or set [cyan]GEMINI_API_KEY[/cyan]."
        ),
        "invalid_credentials": (
            "Gemini credentials expired or rejected.\n"
            "Run '[cyan]gemini[/cyan]' to log in again."
        ),
    },
    "antigravity": {
        "not_running": "Launch Antigravity, then retry.",
        "missing_auth_token": "Restart Antigravity so its language server is relaunched, then retry.",
        "port_detection_failed": (
            "Antigravity is running but its local API could not be reached. "
            "Check that [cyan]lsof[/cyan] is installed and retry."
        ),
    },
}


def get_kind_remediation(provider_id: str, kind: FetchErrorKind) -> str | None:
    """Get provider-specific remediation for a fetch error kind."""
    return REMEDIATION_TEMPLATES.get(provider_id, {}).get(kind.value)


def get_provider_remediation(provider_id: str, category: str) -> str | None:
    """Get remediation message for a provider error category.

    Args:
        provider_id: Provider identifier
        category: Error category (e.g., "authentication", "network")

    Returns:
        Remediation message or None
    """
    general_remediation = {
        ErrorCategory.AUTHENTICATION: (
            f"Log in to {provider_id} again with its own CLI or app."
        ),
        ErrorCategory.RATE_LIMITED: "Wait a few minutes before trying again.",
        ErrorCategory.NETWORK: "Check your internet connection and try again.",
        ErrorCategory.PROVIDER: (
            f"The {provider_id} service may be experiencing issues. Try again later."
        ),
        ErrorCategory.CONFIGURATION: (
            "Check config.toml in the agentquota config directory."
        ),
        ErrorCategory.NOT_RUNNING: f"Start {provider_id} and retry.",
    }

    return general_remediation.get(category)
