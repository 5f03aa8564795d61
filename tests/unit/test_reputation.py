"""Tests for the reputation state machine model."""

from __future__ import annotations

import pytest

from hpx.policy.models import GraylistConfig, ListConfig, Policy, XdpAction
from hpx.reputation import DECAY_FACTOR, NS_IN_MS, LruMap, ReputationModel, TrackingRecord

MS = NS_IN_MS


def test_whitelist_wins_over_blacklist():
    policy = Policy(
        lists={
            "whitelist": ListConfig(enabled=True, action="allow"),
            "blacklist": ListConfig(enabled=True, action="deny"),
        },
        preload={"whitelist": ("10.0.0.1",), "blacklist": ("10.0.0.1", "10.0.0.2")},
    )
    model = ReputationModel(policy)
    assert model.process("10.0.0.1", 0) == XdpAction.PASS
    assert model.process("10.0.0.2", 0) == XdpAction.DROP
    assert model.process("10.0.0.3", 0) == XdpAction.PASS


def test_default_action_applies_to_unlisted():
    model = ReputationModel(Policy(default_action="DROP"))
    assert model.process("10.0.0.3", 0) == XdpAction.DROP


def test_promotion_on_third_fast_packet(graylist_policy: Policy):
    model = ReputationModel(graylist_policy)
    ip = "203.0.113.7"

    assert model.process(ip, 0) == XdpAction.PASS
    assert model.maps["graylist"].lookup(ip).rx_packets == 1
    assert model.process(ip, 100 * MS) == XdpAction.PASS
    assert model.process(ip, 200 * MS) == XdpAction.PASS
    assert ip not in model.maps["blacklist"]

    assert model.process(ip, 300 * MS) == XdpAction.DROP
    assert ip in model.maps["blacklist"]
    tracked = model.maps["graylist"].lookup(ip)
    assert tracked.fast_packets == 3
    assert tracked.rx_packets == 3

    # Later packets hit the blacklist first and leave graylist counters alone.
    assert model.process(ip, 400 * MS) == XdpAction.DROP
    assert model.maps["graylist"].lookup(ip).rx_packets == 3


def test_slow_packets_are_not_fast(graylist_policy: Policy):
    model = ReputationModel(graylist_policy)
    ip = "203.0.113.8"
    for i in range(10):
        assert model.process(ip, i * 2000 * MS) == XdpAction.PASS
    record = model.maps["graylist"].lookup(ip)
    assert record.fast_packets == 0
    assert record.rx_packets == 10


def test_long_idle_resets_fast_count(graylist_policy: Policy):
    model = ReputationModel(graylist_policy)
    ip = "203.0.113.9"
    model.process(ip, 0)
    model.process(ip, 100 * MS)
    model.process(ip, 200 * MS)
    assert model.maps["graylist"].lookup(ip).fast_packets == 2

    idle = 200 * MS + DECAY_FACTOR * 1000 * MS + 1
    assert model.process(ip, idle) == XdpAction.PASS
    assert model.maps["graylist"].lookup(ip).fast_packets == 0
    assert model.process(ip, idle + 10 * MS) == XdpAction.PASS
    assert model.maps["graylist"].lookup(ip).fast_packets == 1


def test_graylist_without_blacklist_never_drops():
    policy = Policy(
        lists={"graylist": GraylistConfig(enabled=True, frequency=1000, fast_packet_threshold=1)}
    )
    model = ReputationModel(policy)
    for i in range(5):
        assert model.process("198.51.100.1", i * MS) == XdpAction.PASS
    assert model.maps["graylist"].lookup("198.51.100.1").fast_packets == 4


def test_binary_graylist_matches_like_a_list():
    policy = Policy(
        lists={"graylist": GraylistConfig(enabled=True, action="deny")},
        preload={"graylist": ("198.51.100.2",)},
    )
    model = ReputationModel(policy)
    assert model.process("198.51.100.2", 0) == XdpAction.DROP
    assert model.process("198.51.100.3", 0) == XdpAction.PASS
    assert "198.51.100.3" not in model.maps["graylist"]


def test_lru_map_evicts_least_recently_used():
    lru = LruMap(2)
    lru.update("a", TrackingRecord("a"))
    lru.update("b", TrackingRecord("b"))
    lru.lookup("a")
    lru.update("c", TrackingRecord("c"))
    assert lru.keys() == ["a", "c"]
    assert len(lru) == 2


def test_lru_map_no_exist():
    lru = LruMap(4)
    assert lru.update("a", TrackingRecord("a", rx_packets=1), no_exist=True)
    assert not lru.update("a", TrackingRecord("a", rx_packets=9), no_exist=True)
    assert lru.lookup("a").rx_packets == 1


def test_lru_map_rejects_zero_capacity():
    with pytest.raises(ValueError):
        LruMap(0)
