"""CLI commands for agentquota."""
