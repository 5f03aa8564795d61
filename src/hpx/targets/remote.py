"""Remote target — bpftool over one authenticated SSH session.

``RemoteSession`` owns the SSH connection and the credentials for one
orchestrator run. The password lives only in memory and is written to
``sudo -S`` on stdin for privileged commands. Commands are serialized: each
one waits for its exit status before the next is sent.
"""

from __future__ import annotations

import logging
import shlex
import threading
from dataclasses import dataclass, field
from pathlib import Path

import paramiko

from hpx.errors import TargetError
from hpx.targets.base import BpftoolTarget, CommandResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


class RemoteSession:
    """A single SSH connection used for every remote call in a run."""

    def __init__(
        self,
        host: str,
        port: int,
        credentials: Credentials,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self._credentials = credentials
        self._timeout = timeout
        self._client: paramiko.SSHClient | None = None
        self._lock = threading.Lock()

    @property
    def username(self) -> str:
        return self._credentials.username

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if self._client is not None:
            return
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.WarningPolicy())
        try:
            client.connect(
                self.host,
                port=self.port,
                username=self._credentials.username,
                password=self._credentials.password,
                timeout=self._timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except paramiko.AuthenticationException as e:
            client.close()
            raise TargetError(
                f"Authentication failed for {self._credentials.username}@{self.host}"
            ) from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise TargetError(f"Could not connect to {self.host}:{self.port}: {e}") from e
        self._client = client
        logger.info("Connected to %s:%d as %s", self.host, self.port, self.username)

    def run(self, argv: list[str], sudo: bool = False) -> CommandResult:
        """Execute a command and block until it exits."""
        client = self._require_client()
        command = shlex.join(argv)
        if sudo:
            command = f"sudo -S -p '' {command}"
        logger.debug("[%s] exec: %s", self.host, command)

        with self._lock:
            try:
                stdin, stdout, stderr = client.exec_command(command, timeout=self._timeout)
                if sudo:
                    stdin.write(self._credentials.password + "\n")
                    stdin.flush()
                stdin.channel.shutdown_write()
                out = stdout.read().decode("utf-8", errors="replace")
                err = stderr.read().decode("utf-8", errors="replace")
                status = stdout.channel.recv_exit_status()
            except (paramiko.SSHException, OSError) as e:
                raise TargetError(f"Remote command failed on {self.host}: {e}") from e
        return CommandResult(status, out, err)

    def put_file(self, local_path: Path, remote_path: str) -> None:
        client = self._require_client()
        with self._lock:
            try:
                sftp = client.open_sftp()
                try:
                    sftp.put(str(local_path), remote_path)
                finally:
                    sftp.close()
            except (paramiko.SSHException, OSError) as e:
                raise TargetError(
                    f"Could not copy {local_path} to {self.host}:{remote_path}: {e}"
                ) from e
        logger.info("Copied %s to %s:%s", local_path, self.host, remote_path)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> RemoteSession:
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _require_client(self) -> paramiko.SSHClient:
        if self._client is None:
            raise TargetError(f"Session to {self.host} is not connected")
        return self._client


class RemoteTarget(BpftoolTarget):
    """Runs privileged commands on a remote host through a RemoteSession."""

    def __init__(
        self,
        session: RemoteSession,
        bpftool: str = "bpftool",
        stage_dir: str = "/tmp",
    ) -> None:
        super().__init__(bpftool)
        self._session = session
        self._stage_dir = stage_dir.rstrip("/")
        self.label = f"{session.host}:{session.port}"

    def _run(self, argv: list[str]) -> CommandResult:
        return self._session.run(argv, sudo=True)

    def stage_object(self, local_path: Path) -> str:
        remote_path = f"{self._stage_dir}/{local_path.name}"
        self._session.put_file(local_path, remote_path)
        return remote_path

    def interface_exists(self, interface: str) -> bool:
        result = self._session.run(["ip", "-o", "link", "show", "dev", interface])
        return result.returncode == 0
