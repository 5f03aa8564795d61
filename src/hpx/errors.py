"""Error taxonomy shared by the engine, the targets and the orchestrator."""

from __future__ import annotations


class HpxError(Exception):
    """Base class for every failure surfaced to the CLI."""


class ConfigurationError(HpxError, ValueError):
    """Malformed or self-contradictory policy. Nothing is attempted."""


class TemplateError(HpxError):
    """A template requires a handler or parameter that does not exist."""


class ToolchainError(HpxError):
    """An external tool (clang, bpftool) failed.

    ``stderr`` holds the tool's diagnostic verbatim.
    """

    def __init__(self, command: list[str] | str, returncode: int, stderr: str = "") -> None:
        self.command = command if isinstance(command, str) else " ".join(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"'{self.command}' exited with status {returncode}"
        if stderr:
            message += f":\n{stderr.rstrip()}"
        super().__init__(message)


class TargetError(HpxError):
    """The target host did not reach the expected state."""


class NothingToUnloadError(TargetError):
    """No registry entry matches the program being unloaded."""


class Cancelled(Exception):
    """The user declined a confirmation prompt.

    Not an ``HpxError``: cancelling is a control outcome, not a failure.
    """
