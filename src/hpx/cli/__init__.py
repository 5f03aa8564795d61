"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from hpx import __version__


@click.group()
@click.version_option(version=__version__, prog_name="hpx")
@click.option(
    "--policy",
    "-p",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a JSON, TOML or YAML policy file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, policy: str | None, verbose: bool) -> None:
    """hpx — generate, deploy and manage XDP packet filters."""
    ctx.ensure_object(dict)
    ctx.obj["policy_path"] = policy
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from hpx.cli.generate import generate  # noqa: F811
    from hpx.cli.get import get_config  # noqa: F811
    from hpx.cli.load import load  # noqa: F811
    from hpx.cli.maps import map_data  # noqa: F811
    from hpx.cli.unload import unload  # noqa: F811

    main.add_command(generate)
    main.add_command(load)
    main.add_command(unload)
    main.add_command(map_data)
    main.add_command(get_config)


_register_commands()
