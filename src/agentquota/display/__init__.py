"""Display utilities for agentquota.

This module provides rendering and output utilities for both terminal
(Rich-based) and JSON output modes.
"""
from __future__ import annotations

from agentquota.display.json import encode_json
from agentquota.display.json import outcome_to_dict
from agentquota.display.json import outcomes_to_dict
from agentquota.display.json import output_json
from agentquota.display.json import output_json_pretty
from agentquota.display.rich import format_bar_and_percentage
from agentquota.display.rich import format_reset
from agentquota.display.rich import format_window
from agentquota.display.rich import render_usage_bar

__all__ = [
    # Rich rendering
    "render_usage_bar",
    "format_bar_and_percentage",
    "format_reset",
    "format_window",
    # JSON output
    "output_json",
    "output_json_pretty",
    "encode_json",
    "outcome_to_dict",
    "outcomes_to_dict",
]
