"""Tests for global configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from hpx.config import HpxConfig


def test_xdg_data_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.delenv("HPX_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    config = HpxConfig.load()
    assert config.data_dir == tmp_path / "hpx"
    assert config.registry_path == tmp_path / "hpx" / "data" / "progs.json"
    assert config.source_path == tmp_path / "hpx" / "out" / "generated.c"
    assert config.object_path == tmp_path / "hpx" / "out" / "generated.o"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("HPX_DATA_DIR", str(tmp_path / "custom"))
    monkeypatch.setenv("HPX_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("HPX_BPFFS", "/mnt/bpf/")
    monkeypatch.setenv("HPX_CLANG", "clang-17")
    monkeypatch.setenv("HPX_BPFTOOL", "/usr/sbin/bpftool")
    config = HpxConfig.load()
    assert config.data_dir == tmp_path / "custom"
    assert config.poll_interval == 0.5
    assert config.pin_path("Example") == "/mnt/bpf/Example"
    assert config.clang == "clang-17"
    assert config.bpftool == "/usr/sbin/bpftool"


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    for var in ("HPX_POLL_INTERVAL", "HPX_BPFFS", "HPX_CLANG", "HPX_BPFTOOL"):
        monkeypatch.delenv(var, raising=False)
    config = HpxConfig.load()
    assert config.poll_interval == 5.0
    assert config.pin_path("Example") == "/sys/fs/bpf/Example"
