"""CLI command: hpx unload — detach a persistently loaded program."""

from __future__ import annotations

import click

from hpx.cli.common import console, handle_errors, make_orchestrator, policy_from_context


@click.command()
@click.option("--iface", "-i", default=None, help="Network interface (default: as loaded).")
@click.option("--xdp-flags", default=None, help="Attach mode (default: as loaded).")
@click.option("--prog-id", type=int, default=None, help="Unload by program id.")
@click.option("--no-confirm", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def unload(
    ctx: click.Context,
    iface: str | None,
    xdp_flags: str | None,
    prog_id: int | None,
    no_confirm: bool,
) -> None:
    """Detach and unpin the policy's program."""
    with handle_errors(), make_orchestrator() as orchestrator:
        policy = policy_from_context(ctx)
        entry = orchestrator.unload(
            policy,
            interface=iface,
            attach_flags=xdp_flags,
            program_id=prog_id,
            no_confirm=no_confirm,
        )
        console.print(
            f"[green]Unloaded[/green] {entry.name} (id {entry.id}) "
            f"from {entry.interface} on {entry.target}"
        )
