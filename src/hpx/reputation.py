"""Per-source-IP reputation tracking — the semantics of the generated filter.

The generated C program evaluates, in order, the whitelist, the blacklist and
the graylist, then falls through to the default action. An investigating
graylist tracks every source:

    UNSEEN ──first packet──▶ TRACKED ──fast packets ≥ threshold──▶ PROMOTED
                               │  ▲
                               └──┘ idle > DECAY_FACTOR × window: fast count reset

``ReputationModel`` replays those rules over in-memory LRU maps so the
behaviour can be exercised without a kernel. Timestamps are nanoseconds.
"""

from __future__ import annotations

import dataclasses
from collections import OrderedDict
from dataclasses import dataclass

from hpx.policy.models import GraylistConfig, Policy, XdpAction

NS_IN_MS = 1_000_000
DECAY_FACTOR = 100


@dataclass
class TrackingRecord:
    ip: str
    rx_packets: int = 0
    fast_packets: int = 0
    last_access_ns: int = 0


class LruMap:
    """A capacity-bounded map that evicts the least recently used entry."""

    def __init__(self, max_entries: int) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, TrackingRecord] = OrderedDict()

    def lookup(self, key: str) -> TrackingRecord | None:
        record = self._entries.get(key)
        if record is not None:
            self._entries.move_to_end(key)
        return record

    def update(self, key: str, record: TrackingRecord, *, no_exist: bool = False) -> bool:
        """Insert or replace ``key``. Returns False if ``no_exist`` and it exists."""
        if key in self._entries:
            if no_exist:
                return False
            self._entries[key] = record
            self._entries.move_to_end(key)
            return True
        if len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = record
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)


class ReputationModel:
    """Executable model of a policy's generated filter."""

    def __init__(self, policy: Policy) -> None:
        self._policy = policy
        self.maps: dict[str, LruMap] = {
            name: LruMap(policy.lists[name].max_entries)
            for name in policy.enabled_lists()
        }
        for name, map_ in self.maps.items():
            for ip in policy.preload_for(name):
                map_.update(ip, TrackingRecord(ip=ip), no_exist=True)

    def process(self, ip: str, now_ns: int) -> XdpAction:
        """Evaluate one packet keyed by ``ip`` arriving at ``now_ns``."""
        for name in ("whitelist", "blacklist"):
            verdict = self._match(name, ip)
            if verdict is not None:
                return verdict

        graylist = self._policy.graylist
        if graylist is not None and graylist.enabled:
            if graylist.investigates:
                verdict = self._investigate(graylist, ip, now_ns)
            else:
                verdict = self._match("graylist", ip)
            if verdict is not None:
                return verdict

        return self._policy.default_xdp_action

    def _match(self, name: str, ip: str) -> XdpAction | None:
        map_ = self.maps.get(name)
        if map_ is None or map_.lookup(ip) is None:
            return None
        return self._policy.lists[name].xdp_action

    def _investigate(self, config: GraylistConfig, ip: str, now_ns: int) -> XdpAction | None:
        graylist = self.maps["graylist"]
        record = graylist.lookup(ip)
        if record is None:
            graylist.update(
                ip,
                TrackingRecord(ip=ip, rx_packets=1, fast_packets=0, last_access_ns=now_ns),
                no_exist=True,
            )
            return None

        window = config.frequency * NS_IN_MS
        elapsed = now_ns - record.last_access_ns
        if elapsed < window:
            record.fast_packets += 1
            blacklist = self.maps.get("blacklist")
            if blacklist is not None and record.fast_packets >= config.fast_packet_threshold:
                blacklist.update(ip, dataclasses.replace(record))
                return XdpAction.DROP
        elif elapsed > DECAY_FACTOR * window:
            record.fast_packets = 0

        record.rx_packets += 1
        record.last_access_ns = now_ns
        return None
