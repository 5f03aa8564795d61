"""Helpers shared by the CLI commands."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager

import click
from rich.console import Console
from rich.markup import escape

from hpx.deploy.orchestrator import Orchestrator
from hpx.errors import Cancelled, HpxError, ToolchainError
from hpx.policy.loader import load_policy, load_preset
from hpx.policy.models import Policy

console = Console(stderr=True)


def policy_from_context(ctx: click.Context) -> Policy:
    """The ``--policy`` document, or the bundled default preset."""
    policy_path = ctx.obj.get("policy_path") if ctx.obj else None
    if policy_path:
        return load_policy(policy_path)
    console.print("[dim]No policy given, using the default preset.[/dim]")
    return load_preset("default")


def _confirm(message: str) -> bool:
    return click.confirm(message, default=False, err=True)


def _prompt(message: str, hide_input: bool) -> str:
    return click.prompt(message.rstrip(": "), hide_input=hide_input, err=True)


def make_orchestrator() -> Orchestrator:
    return Orchestrator(confirm=_confirm, prompt=_prompt)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn library errors into a message and an exit status."""
    try:
        yield
    except Cancelled:
        console.print("[dim]Cancelled.[/dim]")
        sys.exit(0)
    except ToolchainError as e:
        console.print(
            f"[red]Error:[/red] {escape(e.command)} failed (status {e.returncode})"
        )
        if e.stderr:
            console.print(e.stderr.rstrip(), markup=False, highlight=False)
        sys.exit(1)
    except HpxError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
