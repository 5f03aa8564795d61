"""Fixed-width map key/value layout shared with the generated ``struct Data``."""

from __future__ import annotations

import ipaddress
import json
import struct
from dataclasses import dataclass
from typing import Any

# __u32 ip (raw saddr bytes), 4 bytes padding, __u64 rx, __u64 fast, __u64 last_access
RECORD = struct.Struct("<4s4xQQQ")
KEY_SIZE = 4
VALUE_SIZE = RECORD.size


@dataclass(frozen=True)
class MapRecord:
    """One decoded map entry."""

    ip: str
    rx_packets: int = 0
    fast_packets: int = 0
    last_access_ns: int = 0

    def to_dict(self) -> dict:
        return {
            "ip": self.ip,
            "rxPackets": self.rx_packets,
            "fastPackets": self.fast_packets,
            "lastAccessNs": self.last_access_ns,
        }


def encode_key(ip: str) -> bytes:
    """Dotted-quad order: ``10.0.0.5`` → ``0a 00 00 05`` (matches ``ip->saddr``)."""
    return ipaddress.IPv4Address(ip).packed


def encode_value(ip: str) -> bytes:
    """A fresh record: the IP echoed, every counter zero."""
    return RECORD.pack(encode_key(ip), 0, 0, 0)


def decode_key(data: bytes) -> str:
    if len(data) != KEY_SIZE:
        raise ValueError(f"Map key must be {KEY_SIZE} bytes, got {len(data)}")
    return str(ipaddress.IPv4Address(data))


def decode_value(data: bytes) -> MapRecord:
    if len(data) != VALUE_SIZE:
        raise ValueError(f"Map value must be {VALUE_SIZE} bytes, got {len(data)}")
    ip_bytes, rx_packets, fast_packets, last_access_ns = RECORD.unpack(data)
    return MapRecord(
        ip=decode_key(ip_bytes),
        rx_packets=rx_packets,
        fast_packets=fast_packets,
        last_access_ns=last_access_ns,
    )


def hex_args(data: bytes) -> list[str]:
    """bpftool's ``hex`` byte syntax: ``["hex", "0a", "00", ...]``."""
    return ["hex", *(f"{b:02x}" for b in data)]


def parse_bytes(values: list[Any]) -> bytes:
    """Bytes from a bpftool JSON array (``"0x0a"`` strings or ints)."""
    out = bytearray()
    for v in values:
        out.append(int(v, 16) if isinstance(v, str) else int(v))
    return bytes(out)


def decode_entry(entry: dict) -> MapRecord:
    """Decode one ``bpftool map dump -j`` element. The key is authoritative."""
    key = parse_bytes(entry["key"])
    record = decode_value(parse_bytes(entry["value"]))
    ip = decode_key(key)
    if record.ip != ip:
        record = MapRecord(ip, record.rx_packets, record.fast_packets, record.last_access_ns)
    return record


def decode_dump(dump: str | list) -> list[MapRecord]:
    """Decode a full map dump; an empty map or empty output yields ``[]``."""
    if isinstance(dump, str):
        if not dump.strip():
            return []
        dump = json.loads(dump)
    return [decode_entry(entry) for entry in dump]
