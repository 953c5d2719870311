"""Usage status command for agentquota."""

from __future__ import annotations

import logging
import time

import typer
from rich.console import Console

from agentquota.cli.app import ExitCode
from agentquota.cli.app import app
from agentquota.cli.display import show_outcome
from agentquota.config.settings import Config
from agentquota.config.settings import get_config
from agentquota.core.context import SourceMode
from agentquota.core.context import default_cli_context
from agentquota.core.fetch import FetchPipeline
from agentquota.core.orchestrator import fetch_enabled_providers
from agentquota.core.orchestrator import provider_context
from agentquota.display.json import outcome_to_dict
from agentquota.display.json import outcomes_to_dict
from agentquota.display.json import output_json_pretty
from agentquota.errors.classify import classify_exception
from agentquota.errors.types import ErrorCategory
from agentquota.models import ProviderID
from agentquota.providers.registry import build_registry
from agentquota.strategies.base import FetchOutcome

logger = logging.getLogger(__name__)


def build_pipeline(config: Config) -> FetchPipeline:
    return FetchPipeline(build_registry(probe_timeout=config.fetch.probe_timeout))


def exit_code_for(outcomes: dict[ProviderID, FetchOutcome]) -> ExitCode:
    """Exit code for a finished run.

    A single failed provider maps its error category to an exit code;
    mixed results are a partial failure.
    """
    failures = [o for o in outcomes.values() if not o.is_success]
    if not failures:
        return ExitCode.SUCCESS
    if len(failures) < len(outcomes):
        return ExitCode.PARTIAL_FAILURE
    if len(failures) > 1:
        return ExitCode.GENERAL_ERROR

    outcome = failures[0]
    category = classify_exception(outcome.error, outcome.provider_id.value).category
    match category:
        case ErrorCategory.AUTHENTICATION:
            return ExitCode.AUTH_ERROR
        case ErrorCategory.NETWORK | ErrorCategory.RATE_LIMITED:
            return ExitCode.NETWORK_ERROR
        case ErrorCategory.CONFIGURATION:
            return ExitCode.CONFIG_ERROR
    return ExitCode.GENERAL_ERROR


@app.command("status")
async def status_command(
    ctx: typer.Context,
    provider: str | None = typer.Argument(
        None,
        help="Provider or alias to show (default: all enabled)",
    ),
    source: SourceMode = typer.Option(
        SourceMode.AUTO,
        "--source",
        "-s",
        help="Restrict which kinds of strategy may run",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show quota usage for all enabled providers or a specific provider."""
    console = Console()
    verbose = ctx.meta.get("verbose", False)
    config = get_config()
    pipeline = build_pipeline(config)
    base = default_cli_context(source)

    start_time = time.monotonic()
    if provider:
        provider_id = pipeline.registry.provider_for_cli_name(provider)
        if provider_id is None:
            names = ", ".join(sorted(pipeline.registry.cli_names))
            console.print(f"[red]Unknown provider:[/red] {provider}. Available: {names}")
            raise typer.Exit(ExitCode.CONFIG_ERROR)
        context = provider_context(config, base, provider_id)
        outcomes = {provider_id: await pipeline.fetch(context, provider_id)}
    else:
        outcomes = await fetch_enabled_providers(pipeline, base, config)
    duration_ms = (time.monotonic() - start_time) * 1000
    logger.debug("Fetched %d provider(s) in %.0fms", len(outcomes), duration_ms)

    if json_output:
        if provider:
            output_json_pretty(outcome_to_dict(next(iter(outcomes.values()))))
        else:
            output_json_pretty(outcomes_to_dict(outcomes))
    else:
        if not outcomes:
            console.print("[dim]No providers enabled.[/dim]")
        for provider_id, outcome in outcomes.items():
            show_outcome(
                console,
                outcome,
                pipeline.registry.descriptor(provider_id),
                verbose=verbose,
            )
        if verbose:
            console.print(f"Fetched in {duration_ms:.0f}ms", style="dim")

    code = exit_code_for(outcomes)
    if code != ExitCode.SUCCESS:
        raise typer.Exit(code)
