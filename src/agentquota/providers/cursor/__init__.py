"""Cursor provider."""

from agentquota.providers.cursor.web import CursorWebStrategy

__all__ = ["CursorWebStrategy"]
