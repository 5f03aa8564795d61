"""CLI command: hpx generate — render and compile the XDP program."""

from __future__ import annotations

import click

from hpx.cli.common import console, handle_errors, make_orchestrator, policy_from_context
from hpx.policy.export import policy_table


@click.command()
@click.option("--no-confirm", is_flag=True, help="Do not ask before generating.")
@click.option("--skip-compile", is_flag=True, help="Only write the C source.")
@click.pass_context
def generate(ctx: click.Context, no_confirm: bool, skip_compile: bool) -> None:
    """Generate the XDP program for the policy and compile it."""
    with handle_errors(), make_orchestrator() as orchestrator:
        policy = policy_from_context(ctx)
        console.print(f"[bold]hpx[/bold] policy [cyan]{policy.name}[/cyan]")
        console.print(policy_table(policy))

        source = orchestrator.generate(policy, no_confirm=no_confirm)
        console.print(f"  Source: [green]{source}[/green]")
        if skip_compile:
            return
        obj = orchestrator.compile(source)
        console.print(f"  Object: [green]{obj}[/green]")
