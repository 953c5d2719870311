"""Rich display components for agentquota CLI."""

from __future__ import annotations

from rich.console import Console
from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from agentquota.display.rich import format_bar_and_percentage
from agentquota.display.rich import format_reset
from agentquota.errors.classify import classify_exception
from agentquota.errors.types import ErrorCategory
from agentquota.errors.types import ErrorReport
from agentquota.errors.types import ErrorSeverity
from agentquota.providers.registry import ProviderDescriptor
from agentquota.strategies.base import FetchAttempt
from agentquota.strategies.base import FetchOutcome


class ProviderPanel:
    """Rich panel for one provider's successful fetch.

    Windows are labelled with their own label, falling back to the
    descriptor's session/quota/tertiary labels.
    """

    def __init__(
        self,
        outcome: FetchOutcome,
        descriptor: ProviderDescriptor,
        verbose: bool = False,
    ):
        self.outcome = outcome
        self.descriptor = descriptor
        self.verbose = verbose

    def __rich_console__(self, console: Console, options: dict) -> RenderableType:
        snapshot = self.outcome.usage
        grid = Table.grid(padding=(0, 2))
        grid.add_column(min_width=12, justify="left")  # Window label
        grid.add_column(min_width=22, justify="left")  # Bar + percentage
        grid.add_column(justify="right")  # Reset time

        slots = zip(
            (snapshot.primary, snapshot.secondary, snapshot.tertiary),
            self.descriptor.window_labels(),
        )
        for window, default_label in slots:
            if window is None:
                continue
            grid.add_row(
                Text(window.label or default_label or "", style="bold"),
                format_bar_and_percentage(window),
                format_reset(window),
            )

        if snapshot.cost is not None and snapshot.cost.monthly_cost_usd is not None:
            cost = snapshot.cost
            text = Text(f"Extra usage: ${cost.monthly_cost_usd:.2f}")
            if cost.total_credits is not None:
                text.append(f" / ${cost.total_credits:.2f}", style="dim")
            grid.add_row(text, Text(), Text())

        footer = []
        identity = snapshot.identity
        if identity is not None:
            footer.extend(v for v in (identity.email, identity.plan) if v)
        footer.append(f"via {self.outcome.source_label}")

        yield Panel(
            grid,
            title=self.descriptor.metadata.display_name,
            subtitle=" · ".join(footer),
            subtitle_align="right",
            border_style="dim",
            padding=(0, 1),
        )
        if self.verbose:
            yield AttemptTable(self.outcome.attempts)


class AttemptTable:
    """Ordered trail of the strategies the pipeline considered."""

    def __init__(self, attempts: tuple[FetchAttempt, ...]):
        self.attempts = attempts

    def __rich_console__(self, console: Console, options: dict) -> RenderableType:
        if not self.attempts:
            return
        table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
        table.add_column("Strategy")
        table.add_column("Kind", style="dim")
        table.add_column("Result")
        table.add_column("Time", justify="right", style="dim")
        for attempt in self.attempts:
            if not attempt.was_available:
                result = Text("unavailable", style="dim")
            elif attempt.error is not None:
                result = Text(str(attempt.error), style="yellow")
            else:
                result = Text("ok", style="green")
            table.add_row(
                attempt.strategy_id,
                attempt.kind.value,
                result,
                f"{attempt.duration_ms:.0f}ms" if attempt.was_available else "",
            )
        yield table


class ErrorDisplay:
    """Rich renderable for displaying structured errors."""

    def __init__(self, error: ErrorReport, title: str | None = None):
        self.error = error
        self.title = title

    def __rich_console__(self, console: Console, options: dict) -> RenderableType:
        colors = {
            ErrorSeverity.FATAL: "red",
            ErrorSeverity.RECOVERABLE: "yellow",
            ErrorSeverity.TRANSIENT: "yellow",
        }
        color = colors.get(self.error.severity, "red")

        content = Text()
        content.append(self.error.message, style=color)
        if self.error.remediation:
            content.append("\n\n")
            content.append_text(Text.from_markup(self.error.remediation, style="dim"))

        title = self.title or "Error"
        if self.error.category != ErrorCategory.UNKNOWN:
            title = f"{title} [{self.error.category}]"

        yield Panel(content, title=title, border_style=color, title_align="left")


def show_outcome(
    console: Console,
    outcome: FetchOutcome,
    descriptor: ProviderDescriptor,
    verbose: bool = False,
) -> None:
    """Print a provider's usage, or its error and attempt trail."""
    if outcome.is_success:
        console.print(ProviderPanel(outcome, descriptor, verbose=verbose))
        return

    report = classify_exception(outcome.error, outcome.provider_id.value)
    console.print(
        ErrorDisplay(report, title=f"{descriptor.metadata.display_name} Error")
    )
    console.print(AttemptTable(outcome.attempts))


def show_error(error: ErrorReport | Exception, console: Console | None = None) -> None:
    """Display a formatted error message."""
    if console is None:
        console = Console()
    if not isinstance(error, ErrorReport):
        error = classify_exception(error)
    console.print(ErrorDisplay(error))
