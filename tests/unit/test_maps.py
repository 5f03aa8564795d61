"""Tests for map encoding, seeding and dump decoding."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from hpx.errors import ConfigurationError, TargetError
from hpx.maps.codec import (
    VALUE_SIZE,
    MapRecord,
    decode_dump,
    decode_entry,
    decode_value,
    encode_key,
    encode_value,
    hex_args,
)
from hpx.maps.sync import ObservedIps, read_map, seed_map


def _dump_entry(key: bytes, value: bytes) -> dict:
    return {
        "key": [f"0x{b:02x}" for b in key],
        "value": [f"0x{b:02x}" for b in value],
    }


def test_key_is_dotted_quad_order():
    assert encode_key("10.0.0.5") == bytes([10, 0, 0, 5])
    assert hex_args(encode_key("10.0.0.5")) == ["hex", "0a", "00", "00", "05"]


def test_value_layout():
    value = encode_value("192.168.1.203")
    assert len(value) == VALUE_SIZE == 32
    assert value[:4] == bytes([192, 168, 1, 203])
    assert value[4:] == bytes(28)


def test_decode_value_counters():
    value = bytes([1, 2, 3, 4]) + bytes(4) + (7).to_bytes(8, "little") + (3).to_bytes(
        8, "little"
    ) + (123456789).to_bytes(8, "little")
    assert decode_value(value) == MapRecord("1.2.3.4", 7, 3, 123456789)


def test_decode_value_wrong_size():
    with pytest.raises(ValueError):
        decode_value(bytes(16))


def test_seeded_ips_decode_back():
    ips = ["10.0.0.5", "192.168.1.203", "172.16.0.1"]
    dump = json.dumps([_dump_entry(encode_key(ip), encode_value(ip)) for ip in ips])
    assert {r.ip for r in decode_dump(dump)} == set(ips)


def test_decode_entry_prefers_key_and_ignores_formatted():
    entry = _dump_entry(encode_key("10.0.0.9"), encode_value("10.0.0.1"))
    entry["formatted"] = {"key": 9, "value": {}}
    assert decode_entry(entry).ip == "10.0.0.9"


def test_decode_integer_byte_arrays():
    entry = {"key": list(encode_key("10.0.0.5")), "value": list(encode_value("10.0.0.5"))}
    assert decode_entry(entry) == MapRecord("10.0.0.5")


@pytest.mark.parametrize("dump", ["", "  \n", "[]", []])
def test_empty_dump(dump):
    assert decode_dump(dump) == []


def test_seed_map_inserts_each_ip_with_noexist():
    target = MagicMock()
    assert seed_map(target, 7, ["10.0.0.5", "10.0.0.6"], map_name="blacklist") == 2
    target.update_map.assert_any_call(
        7, encode_key("10.0.0.5"), encode_value("10.0.0.5"), no_exist=True
    )
    assert target.update_map.call_count == 2


def test_seed_map_rejects_duplicates_before_any_command():
    target = MagicMock()
    with pytest.raises(ConfigurationError, match="Duplicate"):
        seed_map(target, 7, ["10.0.0.5", "10.0.0.6", "10.0.0.5"])
    target.update_map.assert_not_called()


def test_read_map_decodes_dump():
    target = MagicMock()
    target.dump_map.return_value = json.dumps(
        [_dump_entry(encode_key("10.0.0.5"), encode_value("10.0.0.5"))]
    )
    assert read_map(target, 3) == [MapRecord("10.0.0.5")]
    target.dump_map.assert_called_once_with(3)


def test_read_map_bad_output():
    target = MagicMock()
    target.dump_map.return_value = "not json"
    with pytest.raises(TargetError, match="map 3"):
        read_map(target, 3)


def test_observed_ips_tracks_changes():
    observed = ObservedIps()
    assert observed.last is None
    assert observed.update([MapRecord("10.0.0.5"), MapRecord("10.0.0.6")])
    assert not observed.update([MapRecord("10.0.0.6")])
    assert observed.update([MapRecord("10.0.0.7")])
    assert observed.ips == ["10.0.0.5", "10.0.0.6", "10.0.0.7"]
    assert observed.last == "10.0.0.7"
    assert len(observed) == 3
    assert "10.0.0.6" in observed
