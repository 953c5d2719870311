"""Rich-based rendering utilities for agentquota."""

from __future__ import annotations

from rich.text import Text

from agentquota.models import RateWindow
from agentquota.models import format_reset_countdown
from agentquota.models import usage_to_color


def render_usage_bar(
    used_percent: float,
    width: int = 20,
    color: str | None = None,
) -> Text:
    """Render a usage progress bar.

    Args:
        used_percent: Usage percentage (0-100)
        width: Bar width in characters
        color: Optional color override

    Returns:
        Rich Text with the progress bar
    """
    filled = int(used_percent) * width // 100
    bar = "█" * filled + "░" * (width - filled)

    text = Text()
    text.append(bar, style=color or "default")
    return text


def format_bar_and_percentage(window: RateWindow) -> Text:
    color = usage_to_color(window.used_percent)
    text = Text()
    text.append_text(render_usage_bar(window.used_percent, color=color))
    text.append(f" {window.used_percent:.0f}%", style=color)
    return text


def format_reset(window: RateWindow) -> Text:
    """Reset column: countdown when the reset time is known, raw text otherwise."""
    text = Text()
    time_until = window.time_until_reset()
    if time_until is not None:
        text.append(f"resets in {format_reset_countdown(time_until)}", style="dim")
    elif window.reset_description:
        text.append(window.reset_description, style="dim")
    return text


def format_window(window: RateWindow, label: str | None = None) -> Text:
    """Format a window on one line: bar, percentage, label, reset."""
    text = format_bar_and_percentage(window)
    text.append(f" {window.label or label or ''}".rstrip(), style="dim")
    reset = format_reset(window)
    if reset.plain:
        text.append(" • ", style="dim")
        text.append_text(reset)
    return text
