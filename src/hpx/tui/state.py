"""State shared between the map monitor and the dashboard renderer."""

from __future__ import annotations

from dataclasses import dataclass, field

from hpx.maps.codec import MapRecord
from hpx.maps.sync import ObservedIps


@dataclass
class MonitorState:
    """What the monitor has seen so far for one attached program."""

    program_name: str
    interface: str
    program_id: int = 0
    preloaded: dict[str, int] = field(default_factory=dict)

    # --- Written by MapMonitor.poll_once ---
    observed: dict[str, ObservedIps] = field(default_factory=dict)
    records: dict[str, list[MapRecord]] = field(default_factory=dict)
    polls: int = 0
    last_poll: float = 0.0

    def total(self, list_name: str) -> int:
        observed = self.observed.get(list_name)
        return len(observed) if observed is not None else 0

    def last_ip(self, list_name: str) -> str | None:
        observed = self.observed.get(list_name)
        return observed.last if observed is not None else None

    def busiest(self, list_name: str, limit: int = 5) -> list[MapRecord]:
        """Records with the most received packets, highest first."""
        records = self.records.get(list_name, [])
        return sorted(records, key=lambda r: r.rx_packets, reverse=True)[:limit]
