"""CLI command: hpx map-data — print the contents of a live map."""

from __future__ import annotations

import json

import click
from rich.table import Table

from hpx.cli.common import console, handle_errors, make_orchestrator, policy_from_context
from hpx.policy.models import LIST_NAMES


@click.command("map-data")
@click.argument("map_name", type=click.Choice(LIST_NAMES))
@click.option("--json", "as_json", is_flag=True, help="Print records as JSON.")
@click.pass_context
def map_data(ctx: click.Context, map_name: str, as_json: bool) -> None:
    """Show the records currently held in MAP_NAME."""
    with handle_errors(), make_orchestrator() as orchestrator:
        policy = policy_from_context(ctx)
        records = orchestrator.get_map_data(policy, map_name)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        console.print(f"[dim]{map_name} is empty.[/dim]")
        return

    table = Table(title=map_name.upper())
    table.add_column("IP")
    table.add_column("RX packets", justify="right")
    table.add_column("Fast packets", justify="right")
    table.add_column("Last access (ns)", justify="right")
    for record in records:
        table.add_row(
            record.ip,
            str(record.rx_packets),
            str(record.fast_packets),
            str(record.last_access_ns),
        )
    console.print(table)
