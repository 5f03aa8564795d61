"""Serialize policies back to documents and rich summaries."""

from __future__ import annotations

import json

import yaml
from rich.table import Table

from hpx.policy.models import LIST_NAMES, GraylistConfig, Policy


def policy_to_dict(policy: Policy) -> dict:
    """Inverse of ``policy_from_dict`` using the camelCase document schema."""
    data: dict = {"name": policy.name}
    if policy.target is not None:
        target: dict = {"host": policy.target.host, "port": policy.target.port}
        if policy.target.username:
            target["username"] = policy.target.username
        data["target"] = target
    if policy.network_interface:
        data["networkInterface"] = policy.network_interface
    data["programType"] = policy.program_type.value
    data["defaultAction"] = policy.default_action

    lists: dict = {}
    for list_name in LIST_NAMES:
        config = policy.list_config(list_name)
        if config is None:
            continue
        entry: dict = {
            "enabled": config.enabled,
            "maxEntries": config.max_entries,
            "action": config.action,
        }
        if isinstance(config, GraylistConfig):
            entry["frequency"] = config.frequency
            entry["fastPacketThreshold"] = config.fast_packet_threshold
        lists[list_name] = entry
    data["lists"] = lists

    data["preload"] = {
        list_name: list(policy.preload_for(list_name))
        for list_name in LIST_NAMES
        if list_name in policy.preload
    }
    return data


def dump_policy(policy: Policy, fmt: str = "json", pretty: bool = True) -> str:
    data = policy_to_dict(policy)
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False)
    if pretty:
        return json.dumps(data, indent=2)
    return json.dumps(data, separators=(",", ":"))


def policy_table(policy: Policy) -> Table:
    """Key/value summary shown before generation and with ``--formatted``."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()

    table.add_row("Name", policy.name)
    table.add_row("Target", policy.target_label)
    if policy.target is not None and policy.target.username:
        table.add_row("Username", policy.target.username)
    table.add_row("Interface", policy.interface)
    table.add_row("Program type", policy.program_type.value)
    table.add_row("Default action", policy.default_xdp_action.value)

    for list_name in LIST_NAMES:
        config = policy.list_config(list_name)
        if config is None or not config.enabled:
            table.add_row(list_name.capitalize(), "[dim]disabled[/dim]")
            continue
        detail = f"{config.action} (max {config.max_entries})"
        if isinstance(config, GraylistConfig) and config.investigates:
            detail += (
                f", window {config.frequency} ms,"
                f" threshold {config.fast_packet_threshold}"
            )
        preload = policy.preload_for(list_name)
        if preload:
            detail += f", {len(preload)} preloaded"
        table.add_row(list_name.capitalize(), detail)
    return table
