"""Fetch strategy interface and result records for agentquota."""
