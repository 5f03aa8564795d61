"""CLI command: hpx get-config — print a bundled policy preset."""

from __future__ import annotations

import click
from rich.console import Console

from hpx.cli.common import handle_errors
from hpx.policy.export import dump_policy, policy_table
from hpx.policy.loader import PRESETS, load_preset


@click.command("get-config")
@click.argument("preset", type=click.Choice(PRESETS), default="default")
@click.option("--json", "compact", is_flag=True, help="Compact JSON.")
@click.option("--pretty", is_flag=True, help="Indented JSON (default).")
@click.option("--yaml", "as_yaml", is_flag=True, help="YAML.")
@click.option("--formatted", is_flag=True, help="Human-readable table.")
def get_config(preset: str, compact: bool, pretty: bool, as_yaml: bool, formatted: bool) -> None:
    """Print the PRESET policy so it can be saved and edited."""
    if sum((compact, pretty, as_yaml, formatted)) > 1:
        raise click.UsageError("Choose one of --json, --pretty, --yaml or --formatted.")

    with handle_errors():
        policy = load_preset(preset)

    if formatted:
        Console().print(policy_table(policy))
    elif as_yaml:
        click.echo(dump_policy(policy, fmt="yaml"), nl=False)
    else:
        click.echo(dump_policy(policy, pretty=not compact))
