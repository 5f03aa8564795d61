"""Local target — bpftool via subprocess, elevated with sudo when not root."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

import psutil

from hpx.errors import ToolchainError
from hpx.targets.base import BpftoolTarget, CommandResult

logger = logging.getLogger(__name__)


class LocalTarget(BpftoolTarget):
    """Runs privileged commands on this machine."""

    label = "local"

    def __init__(
        self,
        bpftool: str = "bpftool",
        sudo: bool | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(bpftool)
        self._sudo = os.geteuid() != 0 if sudo is None else sudo
        self._timeout = timeout

    def _run(self, argv: list[str]) -> CommandResult:
        command = ["sudo", *argv] if self._sudo else list(argv)
        logger.debug("exec: %s", " ".join(command))
        try:
            proc = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise ToolchainError(command, 127, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise ToolchainError(command, -1, f"timed out after {self._timeout}s") from e
        return CommandResult(proc.returncode, proc.stdout, proc.stderr)

    def stage_object(self, local_path: Path) -> str:
        return str(local_path)

    def interface_exists(self, interface: str) -> bool:
        return interface in psutil.net_if_stats()
