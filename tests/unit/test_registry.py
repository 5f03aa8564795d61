"""Tests for the lifecycle registry."""

from __future__ import annotations

import json

import pytest

from hpx.deploy.registry import Registry, RegistryEntry
from hpx.errors import HpxError


def _entry(program_id: int = 17, name: str = "Example", target: str = "local") -> RegistryEntry:
    return RegistryEntry(
        id=program_id,
        name=name,
        target=target,
        interface="eth0",
        attach_flags="generic",
        preload={"blacklist": ["10.0.0.5"]},
    )


def test_missing_file_means_nothing_loaded(registry: Registry):
    assert registry.entries() == []
    assert registry.find(name="Example") is None


def test_add_writes_document_schema(registry: Registry):
    registry.add(_entry())
    data = json.loads(registry.path.read_text())
    assert data == {
        "programIds": [17],
        "programs": [
            {
                "id": 17,
                "name": "Example",
                "target": "local",
                "interface": "eth0",
                "attachFlags": "generic",
                "preload": {"blacklist": ["10.0.0.5"]},
            }
        ],
    }


def test_find_by_name_target_and_id(registry: Registry):
    registry.add(_entry(17, "Example", "local"))
    registry.add(_entry(42, "Example", "100.0.0.10:22"))
    assert registry.find(name="Example", target="100.0.0.10:22").id == 42
    assert registry.find(name="Example", target="local").id == 17
    assert registry.find(program_id=42).target == "100.0.0.10:22"
    assert registry.find(program_id=99) is None


def test_add_replaces_same_program(registry: Registry):
    registry.add(_entry(17))
    registry.add(_entry(18))
    assert [e.id for e in registry.entries()] == [18]


def test_file_removed_when_last_entry_removed(registry: Registry):
    first, second = _entry(1, "A"), _entry(2, "B")
    registry.add(first)
    registry.add(second)
    registry.remove(first)
    assert [e.name for e in registry.entries()] == ["B"]
    registry.remove(second)
    assert not registry.path.exists()


def test_corrupt_registry(registry: Registry):
    registry.path.parent.mkdir(parents=True)
    registry.path.write_text("{not json")
    with pytest.raises(HpxError, match="corrupt"):
        registry.entries()
