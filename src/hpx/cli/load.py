"""CLI command: hpx load — attach the compiled program to an interface."""

from __future__ import annotations

import signal

import click
from rich.live import Live
from rich.table import Table

from hpx.cli.common import console, handle_errors, make_orchestrator, policy_from_context
from hpx.deploy.orchestrator import LoadMode
from hpx.tui.display import MonitorDisplay
from hpx.tui.state import MonitorState


@click.command()
@click.option("--iface", "-i", default=None, help="Network interface (default: from policy).")
@click.option(
    "--xdp-flags",
    default="generic",
    show_default=True,
    help="Attach mode: generic, native or offloaded.",
)
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in LoadMode]),
    default=LoadMode.PERSISTENT.value,
    show_default=True,
    help="Persistent loads survive this process; temporary ones detach on exit.",
)
@click.option("--no-confirm", is_flag=True, help="Do not ask for confirmation.")
@click.option("--no-build", is_flag=True, help="Load the existing object without regenerating.")
@click.pass_context
def load(
    ctx: click.Context,
    iface: str | None,
    xdp_flags: str,
    mode: str,
    no_confirm: bool,
    no_build: bool,
) -> None:
    """Load the policy's XDP program on its target."""
    load_mode = LoadMode(mode)
    with handle_errors(), make_orchestrator() as orchestrator:
        policy = policy_from_context(ctx)
        if not no_build:
            orchestrator.build(policy, no_confirm=no_confirm)

        if load_mode is LoadMode.PERSISTENT:
            program_id = orchestrator.load(
                policy,
                interface=iface,
                attach_flags=xdp_flags,
                mode=load_mode,
                no_confirm=no_confirm,
            )
            _print_summary(policy.program_name, policy.target_label, program_id)
            return

        display = MonitorDisplay()
        console.print(
            f"[bold]hpx[/bold] attaching [cyan]{policy.program_name}[/cyan] "
            "temporarily. Press Ctrl+C to detach.\n"
        )

        def _signal_handler(signum: int, frame: object) -> None:
            console.print("\n[dim]Detaching...[/dim]")
            orchestrator.stop()

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        with Live(console=console, refresh_per_second=2) as live:

            def on_change(state: MonitorState) -> None:
                live.update(display.render(state))

            try:
                orchestrator.load(
                    policy,
                    interface=iface,
                    attach_flags=xdp_flags,
                    mode=load_mode,
                    no_confirm=no_confirm,
                    on_change=on_change,
                )
            except KeyboardInterrupt:
                orchestrator.stop()
        console.print("[dim]Program detached.[/dim]")


def _print_summary(name: str, target: str, program_id: int | None) -> None:
    console.print("\n[bold]Program loaded[/bold]")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()

    table.add_row("Program", name)
    table.add_row("Target", target)
    table.add_row("Program ID", str(program_id))
    console.print(table)
