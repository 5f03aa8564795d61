"""Global configuration — XDG paths, env vars, tool locations."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _default_data_dir() -> Path:
    override = os.environ.get("HPX_DATA_DIR")
    if override:
        return Path(override)
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "hpx"
    return Path.home() / ".local" / "share" / "hpx"


@dataclass
class HpxConfig:
    """Application-wide configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    bpffs_root: str = "/sys/fs/bpf"
    remote_stage_dir: str = "/tmp"
    clang: str = "clang"
    bpftool: str = "bpftool"
    poll_interval: float = 5.0
    command_timeout: float = 30.0

    @property
    def out_dir(self) -> Path:
        """Generated source, compiled object and vmlinux.h live here."""
        return self.data_dir / "out"

    @property
    def registry_path(self) -> Path:
        return self.data_dir / "data" / "progs.json"

    @property
    def source_path(self) -> Path:
        return self.out_dir / "generated.c"

    @property
    def object_path(self) -> Path:
        return self.out_dir / "generated.o"

    def pin_path(self, program_name: str) -> str:
        return f"{self.bpffs_root}/{program_name}"

    @classmethod
    def load(cls) -> HpxConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_interval = os.environ.get("HPX_POLL_INTERVAL")
        if env_interval:
            config.poll_interval = float(env_interval)

        env_bpffs = os.environ.get("HPX_BPFFS")
        if env_bpffs:
            config.bpffs_root = env_bpffs.rstrip("/")

        env_clang = os.environ.get("HPX_CLANG")
        if env_clang:
            config.clang = env_clang

        env_bpftool = os.environ.get("HPX_BPFTOOL")
        if env_bpftool:
            config.bpftool = env_bpftool

        return config
