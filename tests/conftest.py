"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from hpx.config import HpxConfig
from hpx.deploy.registry import Registry
from hpx.errors import ToolchainError
from hpx.policy.models import GraylistConfig, ListConfig, Policy


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def blacklist_policy_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "blacklist_only.yaml"


@pytest.fixture
def full_policy_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "full_policy.json"


@pytest.fixture
def remote_policy_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "remote_policy.toml"


@pytest.fixture
def blacklist_policy() -> Policy:
    return Policy(
        name="Edge Guard",
        network_interface="eth1",
        lists={"blacklist": ListConfig(enabled=True, max_entries=64, action="deny")},
        preload={"blacklist": ("10.0.0.5",)},
    )


@pytest.fixture
def graylist_policy() -> Policy:
    return Policy(
        name="Rate Limit",
        lists={
            "whitelist": ListConfig(enabled=True, action="allow"),
            "blacklist": ListConfig(enabled=True, action="deny"),
            "graylist": GraylistConfig(
                enabled=True, frequency=1000, fast_packet_threshold=3
            ),
        },
        preload={"whitelist": ("192.168.1.103",)},
    )


@pytest.fixture
def config(tmp_path: Path) -> HpxConfig:
    return HpxConfig(data_dir=tmp_path / "hpx", poll_interval=0.01)


@pytest.fixture
def registry(config: HpxConfig) -> Registry:
    return Registry(config.registry_path)


class FakeTarget:
    """In-memory stand-in for a host driven through bpftool.

    ``load_program`` creates a program named after ``program_name`` (as the
    kernel truncates it) owning one map per entry in ``map_names``.
    """

    label = "fake"

    def __init__(
        self,
        program_name: str,
        map_names: tuple[str, ...] = ("blacklist",),
        interfaces: tuple[str, ...] = ("lo", "eth0", "eth1"),
        fail_on: tuple[str, ...] = (),
    ) -> None:
        self.program_name = program_name
        self.map_names = map_names
        self.interfaces = set(interfaces)
        self.fail_on = set(fail_on)
        self.calls: list[tuple] = []
        self.programs: dict[int, dict] = {}
        self.maps: dict[int, dict] = {}
        self.pins: dict[str, int] = {}
        self.attached: dict[str, tuple[int, str]] = {}
        self._next_id = 10

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method in self.fail_on:
            raise ToolchainError(["bpftool", method], 255, f"Error: {method} failed")

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    @property
    def mutating_calls(self) -> list[tuple]:
        readonly = {"show_programs", "show_program", "show_maps", "dump_map", "interface_exists"}
        return [c for c in self.calls if c[0] not in readonly]

    def stage_object(self, local_path: Path) -> str:
        self._record("stage_object", local_path)
        return str(local_path)

    def load_program(self, object_path: str, pin_path: str) -> None:
        self._record("load_program", object_path, pin_path)
        map_ids = []
        for name in self.map_names:
            map_id = self._new_id()
            self.maps[map_id] = {"id": map_id, "name": name[:15], "entries": {}}
            map_ids.append(map_id)
        program_id = self._new_id()
        self.programs[program_id] = {
            "id": program_id,
            "name": self.program_name[:15],
            "map_ids": map_ids,
        }
        self.pins[pin_path] = program_id

    def show_programs(self) -> list[dict]:
        self._record("show_programs")
        return [dict(p) for p in self.programs.values()]

    def show_program(self, program_id: int) -> dict:
        self._record("show_program", program_id)
        return dict(self.programs[program_id])

    def show_maps(self) -> list[dict]:
        self._record("show_maps")
        return [{"id": m["id"], "name": m["name"]} for m in self.maps.values()]

    def update_map(self, map_id: int, key: bytes, value: bytes, no_exist: bool = True) -> None:
        self._record("update_map", map_id, key, value)
        entries = self.maps[map_id]["entries"]
        if no_exist and key in entries:
            raise ToolchainError(["bpftool", "map", "update"], 255, "Error: update failed: File exists")
        entries[key] = value

    def dump_map(self, map_id: int) -> str:
        self._record("dump_map", map_id)
        return json.dumps(
            [
                {"key": [f"0x{b:02x}" for b in k], "value": [f"0x{b:02x}" for b in v]}
                for k, v in self.maps[map_id]["entries"].items()
            ]
        )

    def attach_interface(self, program_id: int, interface: str, mode: str) -> None:
        self._record("attach_interface", program_id, interface, mode)
        self.attached[interface] = (program_id, mode)

    def detach_interface(self, interface: str, mode: str) -> None:
        self._record("detach_interface", interface, mode)
        self.attached.pop(interface, None)

    def remove_pin(self, pin_path: str) -> None:
        self._record("remove_pin", pin_path)
        self.pins.pop(pin_path, None)

    def interface_exists(self, interface: str) -> bool:
        self._record("interface_exists", interface)
        return interface in self.interfaces


@pytest.fixture
def fake_target(blacklist_policy: Policy) -> FakeTarget:
    return FakeTarget(blacklist_policy.program_name)


@pytest.fixture
def make_target() -> type[FakeTarget]:
    return FakeTarget
