"""Load Policy objects from JSON, TOML or YAML documents."""

from __future__ import annotations

import importlib.resources
import ipaddress
import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import yaml

from hpx.errors import ConfigurationError
from hpx.policy.models import (
    DEFAULT_FAST_PACKET_THRESHOLD,
    DEFAULT_FREQUENCY_MS,
    DEFAULT_MAX_ENTRIES,
    DEFAULT_NAME,
    DEFAULT_SSH_PORT,
    LIST_NAMES,
    GraylistConfig,
    ListConfig,
    Policy,
    ProgramType,
    Target,
    default_list_action,
    resolve_default_action,
)

logger = logging.getLogger(__name__)

PRESETS = ("default", "example", "base")

_SUFFIX_FORMATS = {
    ".json": "json",
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def load_policy(path: str | Path) -> Policy:
    """Load a policy from a file, choosing the parser by extension."""
    path = Path(path)
    fmt = _SUFFIX_FORMATS.get(path.suffix.lower())
    if fmt is None:
        raise ConfigurationError(
            f"Unsupported policy file type '{path.suffix}'. "
            "Supported: .json, .toml, .yaml, .yml"
        )
    if not path.is_file():
        raise ConfigurationError(f"Policy file does not exist: {path}")
    return load_policy_from_string(path.read_text(encoding="utf-8"), fmt)


def load_policy_from_string(text: str, fmt: str = "yaml") -> Policy:
    """Parse a policy document in the given format."""
    try:
        if fmt == "json":
            data = json.loads(text)
        elif fmt == "toml":
            data = tomllib.loads(text)
        elif fmt == "yaml":
            data = yaml.safe_load(text)
        else:
            raise ConfigurationError(f"Unknown policy format: {fmt}")
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not parse {fmt} policy: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("Policy document must be a mapping")
    return policy_from_dict(data)


def load_preset(name: str) -> Policy:
    """Load one of the bundled preset policies."""
    return policy_from_dict(load_preset_data(name))


def load_preset_data(name: str) -> dict:
    if name not in PRESETS:
        raise ConfigurationError(f"Unknown preset '{name}'. Available: {', '.join(PRESETS)}")
    pkg = importlib.resources.files("hpx.policy.presets")
    text = pkg.joinpath(f"{name}.yaml").read_text(encoding="utf-8")
    return yaml.safe_load(text)


def policy_from_dict(data: dict[str, Any]) -> Policy:
    """Build a Policy from a decoded document. Unknown fields are ignored."""
    name = data.get("name", DEFAULT_NAME)
    if not isinstance(name, str) or not name.replace(" ", ""):
        raise ConfigurationError("Policy 'name' must be a non-empty string")

    program_type = _parse_program_type(data.get("programType", "ip"))

    default_action = str(data.get("defaultAction", "PASS"))
    _, recognized = resolve_default_action(default_action)
    if not recognized:
        logger.warning(
            "Unsupported default action '%s', falling back to PASS", default_action
        )

    interface = data.get("networkInterface")
    if interface is not None and not isinstance(interface, str):
        raise ConfigurationError("'networkInterface' must be a string")

    lists_data = data.get("lists") or {}
    if not isinstance(lists_data, dict):
        raise ConfigurationError("'lists' must be a mapping")
    lists = {
        list_name: _parse_list(list_name, lists_data[list_name])
        for list_name in LIST_NAMES
        if list_name in lists_data and lists_data[list_name] is not None
    }

    preload_data = data.get("preload") or {}
    if not isinstance(preload_data, dict):
        raise ConfigurationError("'preload' must be a mapping")
    preload = {
        list_name: _parse_preload(list_name, preload_data[list_name])
        for list_name in LIST_NAMES
        if preload_data.get(list_name)
    }

    return Policy(
        name=name,
        target=_parse_target(data.get("target")),
        network_interface=interface or None,
        program_type=program_type,
        default_action=default_action,
        lists=lists,
        preload=preload,
    )


def _parse_program_type(value: Any) -> ProgramType:
    try:
        return ProgramType(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported program type '{value}'. Supported: ip, dns"
        ) from None


def _parse_target(data: Any) -> Target | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigurationError("'target' must be a mapping")
    host = data.get("host")
    if not host:
        return None
    port = _positive_int(data.get("port", DEFAULT_SSH_PORT), "target.port")
    username = data.get("username")
    return Target(host=str(host), port=port, username=str(username) if username else None)


def _parse_list(list_name: str, data: Any) -> ListConfig:
    if not isinstance(data, dict):
        raise ConfigurationError(f"'lists.{list_name}' must be a mapping")
    enabled = bool(data.get("enabled", False))
    max_entries = _positive_int(
        data.get("maxEntries", DEFAULT_MAX_ENTRIES), f"lists.{list_name}.maxEntries"
    )
    action = str(data.get("action", default_list_action(list_name)))

    if list_name != "graylist":
        return ListConfig(enabled=enabled, max_entries=max_entries, action=action)

    return GraylistConfig(
        enabled=enabled,
        max_entries=max_entries,
        action=action,
        frequency=_positive_int(
            data.get("frequency", DEFAULT_FREQUENCY_MS), "lists.graylist.frequency"
        ),
        fast_packet_threshold=_positive_int(
            data.get("fastPacketThreshold", DEFAULT_FAST_PACKET_THRESHOLD),
            "lists.graylist.fastPacketThreshold",
        ),
    )


def _parse_preload(list_name: str, entries: Any) -> tuple[str, ...]:
    if isinstance(entries, str) or not isinstance(entries, list):
        raise ConfigurationError(f"'preload.{list_name}' must be a list of IPv4 addresses")

    seen: set[str] = set()
    parsed: list[str] = []
    for entry in entries:
        try:
            ip = str(ipaddress.IPv4Address(str(entry).strip()))
        except ValueError:
            raise ConfigurationError(
                f"'preload.{list_name}' contains an invalid IPv4 address: {entry!r}"
            ) from None
        if ip in seen:
            raise ConfigurationError(
                f"'preload.{list_name}' contains duplicate address {ip}"
            )
        seen.add(ip)
        parsed.append(ip)
    return tuple(parsed)


def _positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"'{field_name}' must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{field_name}' must be a positive integer") from None
    if number <= 0:
        raise ConfigurationError(f"'{field_name}' must be a positive integer")
    return number
