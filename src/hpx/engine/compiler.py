"""Write generated source and compile it to a BPF object with clang."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from hpx.errors import ToolchainError

logger = logging.getLogger(__name__)

KERNEL_BTF = "/sys/kernel/btf/vmlinux"


def write_source(source: str, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source, encoding="utf-8")
    logger.info("Generated XDP program at %s", path)
    return path


def ensure_vmlinux_header(out_dir: Path, bpftool: str = "bpftool") -> Path:
    """Dump kernel BTF to ``vmlinux.h``, rewriting it only when it changed."""
    header = out_dir / "vmlinux.h"
    dumped = _run_tool([bpftool, "btf", "dump", "file", KERNEL_BTF, "format", "c"])
    if header.exists() and header.read_text(encoding="utf-8").strip() == dumped.strip():
        logger.debug("vmlinux.h is up to date")
        return header
    out_dir.mkdir(parents=True, exist_ok=True)
    header.write_text(dumped, encoding="utf-8")
    logger.info("Wrote %s", header)
    return header


def compile_source(source_path: Path, object_path: Path, clang: str = "clang") -> Path:
    """Compile ``source_path`` for the bpf target. Diagnostics propagate verbatim."""
    argv = [
        clang,
        "-O2",
        "-g",
        "-target",
        "bpf",
        f"-I{source_path.parent}",
        "-c",
        str(source_path),
        "-o",
        str(object_path),
    ]
    _run_tool(argv)
    logger.info("Compiled XDP program at %s", object_path)
    return object_path


def _run_tool(argv: list[str], timeout: float = 120.0) -> str:
    logger.debug("exec: %s", " ".join(argv))
    try:
        proc = subprocess.run(argv, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise ToolchainError(argv, 127, str(e)) from e
    except subprocess.TimeoutExpired as e:
        raise ToolchainError(argv, -1, f"timed out after {timeout}s") from e
    if proc.returncode != 0:
        raise ToolchainError(argv, proc.returncode, proc.stderr)
    return proc.stdout
