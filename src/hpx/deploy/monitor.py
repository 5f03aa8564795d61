"""Poll live maps while a temporary program is attached."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from hpx.maps.sync import ObservedIps, read_map
from hpx.targets.base import BpfTarget
from hpx.tui.state import MonitorState

logger = logging.getLogger(__name__)


class MapMonitor:
    """Blocking poll loop over a program's maps until ``stop()``.

    A shared ``stop_event`` that is already set makes ``run`` return without
    polling.

    ``on_change`` is called after the first poll and after every poll that
    surfaced new IPs.
    """

    def __init__(
        self,
        target: BpfTarget,
        state: MonitorState,
        map_ids: dict[str, int],
        poll_interval: float = 5.0,
        on_change: Callable[[MonitorState], None] | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._target = target
        self._state = state
        self._map_ids = dict(map_ids)
        self._poll_interval = poll_interval
        self._on_change = on_change
        self._stop_event = stop_event or threading.Event()
        for name in self._map_ids:
            state.observed.setdefault(name, ObservedIps())

    @property
    def state(self) -> MonitorState:
        return self._state

    def poll_once(self) -> bool:
        """Read every map once. Returns True if the observed IPs changed."""
        changed = False
        for name, map_id in self._map_ids.items():
            records = read_map(self._target, map_id)
            self._state.records[name] = records
            if self._state.observed[name].update(records):
                changed = True
        self._state.polls += 1
        self._state.last_poll = time.time()
        return changed

    def run(self) -> None:
        while not self._stop_event.is_set():
            changed = self.poll_once()
            if (changed or self._state.polls == 1) and self._on_change:
                self._on_change(self._state)
            self._stop_event.wait(timeout=self._poll_interval)
        logger.info("Monitor stopped after %d polls", self._state.polls)

    def stop(self) -> None:
        self._stop_event.set()
