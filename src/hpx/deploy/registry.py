"""Lifecycle registry — the durable record of what is currently attached.

The file holds ``{"programIds": [...], "programs": [...]}``. It is read,
fully rewritten and closed on every mutation, and removed once the last
program is unloaded: a missing file means nothing is loaded.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from hpx.errors import HpxError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    """One loaded program and the preload data it was seeded with."""

    id: int
    name: str
    target: str = "local"
    interface: str = ""
    attach_flags: str = "generic"
    preload: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "target": self.target,
            "interface": self.interface,
            "attachFlags": self.attach_flags,
            "preload": self.preload,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RegistryEntry:
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            target=str(data.get("target", "local")),
            interface=str(data.get("interface", "")),
            attach_flags=str(data.get("attachFlags", "generic")),
            preload={k: list(v) for k, v in (data.get("preload") or {}).items()},
        )


class Registry:
    """JSON-file registry at a well-known per-user path."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def entries(self) -> list[RegistryEntry]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
            return [RegistryEntry.from_dict(p) for p in data.get("programs", [])]
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            raise HpxError(f"Registry file {self._path} is corrupt: {e}") from e

    def find(
        self,
        name: str | None = None,
        target: str | None = None,
        program_id: int | None = None,
    ) -> RegistryEntry | None:
        """Match by program id when given, otherwise by name and target."""
        for entry in self.entries():
            if program_id is not None:
                if entry.id == program_id:
                    return entry
                continue
            if entry.name == name and (target is None or entry.target == target):
                return entry
        return None

    def add(self, entry: RegistryEntry) -> None:
        """Record ``entry``, replacing any entry with its id or name+target."""
        kept = [
            e
            for e in self.entries()
            if e.id != entry.id and (e.name, e.target) != (entry.name, entry.target)
        ]
        self._write(kept + [entry])
        logger.info("Registered program %d (%s) on %s", entry.id, entry.name, entry.target)

    def remove(self, entry: RegistryEntry) -> None:
        kept = [e for e in self.entries() if e != entry]
        self._write(kept)
        logger.info("Unregistered program %d (%s)", entry.id, entry.name)

    def _write(self, entries: list[RegistryEntry]) -> None:
        if not entries:
            self._path.unlink(missing_ok=True)
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "programIds": [e.id for e in entries],
            "programs": [e.to_dict() for e in entries],
        }
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)
