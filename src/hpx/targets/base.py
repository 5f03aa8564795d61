"""BpfTarget protocol — privileged program/map operations on one host.

Both implementations drive ``bpftool``; they differ only in how a command is
executed (local subprocess vs. remote SSH session) and how the compiled
object reaches the host.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from hpx.errors import TargetError, ToolchainError
from hpx.maps.codec import hex_args

logger = logging.getLogger(__name__)

XDP_ATTACH_MODES = {
    "generic": "xdpgeneric",
    "native": "xdpdrv",
    "offloaded": "xdpoffload",
}


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class BpfTarget(Protocol):
    """Capability interface the orchestrator's lifecycle logic runs against."""

    label: str

    def stage_object(self, local_path: Path) -> str:
        """Make the compiled object available on the host; returns its path there."""
        ...

    def load_program(self, object_path: str, pin_path: str) -> None: ...

    def show_programs(self) -> list[dict[str, Any]]: ...

    def show_program(self, program_id: int) -> dict[str, Any]: ...

    def show_maps(self) -> list[dict[str, Any]]: ...

    def update_map(self, map_id: int, key: bytes, value: bytes, no_exist: bool = True) -> None: ...

    def dump_map(self, map_id: int) -> str: ...

    def attach_interface(self, program_id: int, interface: str, mode: str) -> None: ...

    def detach_interface(self, interface: str, mode: str) -> None: ...

    def remove_pin(self, pin_path: str) -> None: ...

    def interface_exists(self, interface: str) -> bool: ...


class BpftoolTarget:
    """bpftool command construction shared by local and remote targets.

    Subclasses implement ``_run`` (privileged execution) and ``stage_object``.
    """

    label = "target"

    def __init__(self, bpftool: str = "bpftool") -> None:
        self._bpftool = bpftool

    def _run(self, argv: list[str]) -> CommandResult:
        raise NotImplementedError

    def _checked(self, argv: list[str]) -> str:
        result = self._run(argv)
        if result.returncode != 0:
            raise ToolchainError(argv, result.returncode, result.stderr or result.stdout)
        return result.stdout

    def _json(self, argv: list[str]) -> Any:
        output = self._checked(argv)
        try:
            return json.loads(output) if output.strip() else []
        except json.JSONDecodeError as e:
            raise TargetError(f"Unexpected output from '{' '.join(argv)}': {e}") from e

    def stage_object(self, local_path: Path) -> str:
        raise NotImplementedError

    def load_program(self, object_path: str, pin_path: str) -> None:
        logger.info("[%s] loading %s pinned at %s", self.label, object_path, pin_path)
        self._checked([self._bpftool, "prog", "load", object_path, pin_path])

    def show_programs(self) -> list[dict[str, Any]]:
        return list(self._json([self._bpftool, "prog", "show", "-j"]))

    def show_program(self, program_id: int) -> dict[str, Any]:
        data = self._json([self._bpftool, "prog", "show", "id", str(program_id), "-j"])
        if not isinstance(data, dict):
            raise TargetError(f"Program {program_id} not found on {self.label}")
        return data

    def show_maps(self) -> list[dict[str, Any]]:
        return list(self._json([self._bpftool, "map", "show", "-j"]))

    def update_map(self, map_id: int, key: bytes, value: bytes, no_exist: bool = True) -> None:
        argv = [
            self._bpftool,
            "map",
            "update",
            "id",
            str(map_id),
            "key",
            *hex_args(key),
            "value",
            *hex_args(value),
            "noexist" if no_exist else "any",
        ]
        self._checked(argv)

    def dump_map(self, map_id: int) -> str:
        return self._checked([self._bpftool, "map", "dump", "id", str(map_id), "-j"])

    def attach_interface(self, program_id: int, interface: str, mode: str) -> None:
        logger.info("[%s] attaching program %d to %s (%s)", self.label, program_id, interface, mode)
        self._checked(
            [self._bpftool, "net", "attach", mode, "id", str(program_id), "dev", interface]
        )

    def detach_interface(self, interface: str, mode: str) -> None:
        logger.info("[%s] detaching %s from %s", self.label, mode, interface)
        self._checked([self._bpftool, "net", "detach", mode, "dev", interface])

    def remove_pin(self, pin_path: str) -> None:
        self._checked(["rm", "-f", pin_path])

    def interface_exists(self, interface: str) -> bool:
        raise NotImplementedError
