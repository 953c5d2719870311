"""Provider catalog command for agentquota."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from agentquota.cli.app import app
from agentquota.core.context import default_cli_context
from agentquota.display.json import output_json_pretty
from agentquota.providers.registry import ProviderRegistry
from agentquota.providers.registry import build_registry


def catalog_rows(registry: ProviderRegistry) -> list[dict]:
    """One row per provider: id, name, ordered strategies, aliases."""
    context = default_cli_context()
    rows = []
    for descriptor in registry.all():
        strategies = descriptor.resolve_strategies(context)
        rows.append(
            {
                "id": descriptor.id.value,
                "name": descriptor.metadata.display_name,
                "description": descriptor.metadata.description,
                "strategies": [{"id": s.id, "kind": s.kind.value} for s in strategies],
                "aliases": list(descriptor.cli_config.aliases),
                "dashboard_url": descriptor.metadata.dashboard_url,
            }
        )
    return rows


@app.command("list")
def list_command(
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """List supported providers and their fetch strategies."""
    rows = catalog_rows(build_registry())
    if json_output:
        output_json_pretty({"providers": rows})
        return

    table = Table(title="Providers", show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Strategies")
    table.add_column("Aliases", style="dim")
    for row in rows:
        table.add_row(
            row["id"],
            row["name"],
            ", ".join(f"{s['id']} ({s['kind']})" for s in row["strategies"]),
            ", ".join(row["aliases"]),
        )
    Console().print(table)
