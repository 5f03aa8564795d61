"""Seed preload IPs into live maps and read them back."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from hpx.errors import ConfigurationError, TargetError
from hpx.maps.codec import MapRecord, decode_dump, encode_key, encode_value

if TYPE_CHECKING:
    from hpx.targets.base import BpfTarget

logger = logging.getLogger(__name__)


def seed_map(target: BpfTarget, map_id: int, ips: Sequence[str], map_name: str = "") -> int:
    """Insert every IP with insert-only semantics. Returns the count inserted.

    Duplicates are a configuration error and are rejected before the first
    command is issued; an entry already present in the map fails the update.
    """
    seen: set[str] = set()
    for ip in ips:
        if ip in seen:
            raise ConfigurationError(f"Duplicate preload entry {ip} for map '{map_name or map_id}'")
        seen.add(ip)

    for ip in ips:
        target.update_map(map_id, encode_key(ip), encode_value(ip), no_exist=True)
        logger.debug("Seeded %s into map %s (id %d)", ip, map_name, map_id)
    return len(ips)


def read_map(target: BpfTarget, map_id: int) -> list[MapRecord]:
    """Dump and decode a map by id."""
    raw = target.dump_map(map_id)
    try:
        return decode_dump(raw)
    except (ValueError, KeyError, TypeError, json.JSONDecodeError) as e:
        raise TargetError(f"Could not decode contents of map {map_id}: {e}") from e


class ObservedIps:
    """Distinct IPs seen across polls, in first-seen order."""

    def __init__(self) -> None:
        self._ips: dict[str, None] = {}

    def update(self, records: Iterable[MapRecord]) -> bool:
        """Merge a poll's records. Returns True if new IPs appeared."""
        before = len(self._ips)
        for record in records:
            self._ips.setdefault(record.ip, None)
        return len(self._ips) != before

    @property
    def ips(self) -> list[str]:
        return list(self._ips)

    @property
    def last(self) -> str | None:
        return next(reversed(self._ips), None)

    def __len__(self) -> int:
        return len(self._ips)

    def __contains__(self, ip: object) -> bool:
        return ip in self._ips
