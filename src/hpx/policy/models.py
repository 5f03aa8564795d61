"""Policy data models — immutable dataclasses used across the entire codebase."""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass, field

DEFAULT_NAME = "Example Program"
DEFAULT_INTERFACE = "eth0"
DEFAULT_MAX_ENTRIES = 32
DEFAULT_FREQUENCY_MS = 1000
DEFAULT_FAST_PACKET_THRESHOLD = 10
DEFAULT_SSH_PORT = 22

LIST_NAMES = ("whitelist", "blacklist", "graylist")


class ProgramType(enum.Enum):
    """Which packet field the filter keys its maps on."""

    IP = "ip"
    DNS = "dns"


class XdpAction(enum.Enum):
    """Verdicts the generated filter can return."""

    PASS = "XDP_PASS"
    DROP = "XDP_DROP"


# Unmatched traffic fails open, list actions fail closed.
DEFAULT_ACTION_FALLBACK = XdpAction.PASS
LIST_ACTION_FALLBACK = XdpAction.DROP

_LIST_ACTIONS = {
    "allow": XdpAction.PASS,
    "deny": XdpAction.DROP,
}

_DEFAULT_LIST_ACTIONS = {
    "whitelist": "allow",
    "blacklist": "deny",
    "graylist": "investigate",
}

_LOOPBACK_NAMES = frozenset({"localhost", "localhost.localdomain"})


def default_list_action(list_name: str) -> str:
    return _DEFAULT_LIST_ACTIONS.get(list_name, "deny")


def resolve_default_action(value: str | None) -> tuple[XdpAction, bool]:
    """Map a ``defaultAction`` string to a verdict.

    Returns ``(action, recognized)``; unrecognized values yield
    ``DEFAULT_ACTION_FALLBACK`` with ``recognized=False``.
    """
    if value is None:
        return DEFAULT_ACTION_FALLBACK, True
    normalized = value.replace(" ", "").upper()
    if normalized == "PASS":
        return XdpAction.PASS, True
    if normalized == "DROP":
        return XdpAction.DROP, True
    return DEFAULT_ACTION_FALLBACK, False


@dataclass(frozen=True)
class Target:
    """Where the filter runs. ``None`` on the policy means localhost."""

    host: str
    port: int = DEFAULT_SSH_PORT
    username: str | None = None

    @property
    def is_local(self) -> bool:
        host = self.host.strip().lower()
        if not host or host in _LOOPBACK_NAMES:
            return True
        try:
            return ipaddress.ip_address(host).is_loopback
        except ValueError:
            return False

    @property
    def label(self) -> str:
        """Registry key for the target."""
        if self.is_local:
            return "local"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ListConfig:
    """One named IP list (whitelist / blacklist)."""

    enabled: bool = False
    max_entries: int = DEFAULT_MAX_ENTRIES
    action: str = "deny"

    @property
    def xdp_action(self) -> XdpAction:
        """``allow`` passes, ``deny`` and anything unrecognized drops."""
        return _LIST_ACTIONS.get(self.action.strip().lower(), LIST_ACTION_FALLBACK)


@dataclass(frozen=True)
class GraylistConfig(ListConfig):
    """The rate-limited list. ``frequency`` is the fast-packet window in ms."""

    action: str = "investigate"
    frequency: int = DEFAULT_FREQUENCY_MS
    fast_packet_threshold: int = DEFAULT_FAST_PACKET_THRESHOLD

    @property
    def investigates(self) -> bool:
        """Non-binary actions turn on the rate-limiting state machine."""
        return self.action.strip().lower() not in _LIST_ACTIONS


@dataclass(frozen=True)
class Policy:
    """A complete access policy and the data to preload into its maps."""

    name: str = DEFAULT_NAME
    target: Target | None = None
    network_interface: str | None = None
    program_type: ProgramType = ProgramType.IP
    default_action: str = "PASS"
    lists: dict[str, ListConfig] = field(default_factory=dict)
    preload: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def program_name(self) -> str:
        """Name used for the C function, the pin and id lookups."""
        return self.name.replace(" ", "")

    @property
    def is_local(self) -> bool:
        return self.target is None or self.target.is_local

    @property
    def target_label(self) -> str:
        return "local" if self.target is None else self.target.label

    @property
    def interface(self) -> str:
        return self.network_interface or DEFAULT_INTERFACE

    @property
    def default_xdp_action(self) -> XdpAction:
        return resolve_default_action(self.default_action)[0]

    def list_config(self, list_name: str) -> ListConfig | None:
        return self.lists.get(list_name)

    def is_enabled(self, list_name: str) -> bool:
        config = self.lists.get(list_name)
        return config is not None and config.enabled

    def enabled_lists(self) -> tuple[str, ...]:
        return tuple(name for name in LIST_NAMES if self.is_enabled(name))

    def preload_for(self, list_name: str) -> tuple[str, ...]:
        return self.preload.get(list_name, ())

    @property
    def graylist(self) -> GraylistConfig | None:
        config = self.lists.get("graylist")
        return config if isinstance(config, GraylistConfig) else None
