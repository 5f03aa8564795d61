"""Deployment orchestrator — generate, compile, load, monitor and unload.

One ``Orchestrator`` owns a single CLI invocation: it resolves where a
policy runs (this host or an SSH target), drives ``bpftool`` through a
``BpfTarget`` and records what it stood up in the registry so a later
invocation can tear it down again.
"""

from __future__ import annotations

import enum
import logging
import os
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from hpx.config import HpxConfig
from hpx.deploy.interfaces import resolve_interface, xdp_attach_mode
from hpx.deploy.monitor import MapMonitor
from hpx.deploy.registry import Registry, RegistryEntry
from hpx.engine.compiler import compile_source, ensure_vmlinux_header, write_source
from hpx.engine.composer import generate_source
from hpx.errors import Cancelled, ConfigurationError, HpxError, NothingToUnloadError, TargetError
from hpx.maps.codec import MapRecord
from hpx.maps.sync import read_map, seed_map
from hpx.policy.models import DEFAULT_SSH_PORT, Policy
from hpx.targets.base import BpfTarget
from hpx.targets.local import LocalTarget
from hpx.targets.remote import Credentials, RemoteSession, RemoteTarget
from hpx.tui.state import MonitorState

logger = logging.getLogger(__name__)

# bpf_attr.prog_name is 16 bytes including the terminator.
KERNEL_NAME_LEN = 15


class LoadMode(enum.Enum):
    TEMPORARY = "temporary"
    PERSISTENT = "persistent"


class LifecycleState(enum.Enum):
    GENERATED = "generated"
    COMPILED = "compiled"
    LOCAL_TEMPORARY = "local-temporary"
    LOCAL_PERSISTENT = "local-persistent"
    REMOTE_PERSISTENT = "remote-persistent"
    UNLOADED = "unloaded"


@dataclass(frozen=True)
class LoadedProgram:
    """A program that is pinned, seeded and attached."""

    program_id: int
    map_ids: dict[str, int] = field(default_factory=dict)
    pin_path: str = ""
    interface: str = ""
    mode: str = "xdpgeneric"


Confirm = Callable[[str], bool]
Prompt = Callable[[str, bool], str]
TargetFactory = Callable[[Policy], BpfTarget]


def _decline(message: str) -> bool:
    return False


def _no_prompt(message: str, hide_input: bool) -> str:
    raise TargetError(f"{message.rstrip(': ')} is required but no prompt is available")


class Orchestrator:
    """Drives a policy through its lifecycle against local or remote targets.

    ``confirm`` answers yes/no questions and defaults to declining;
    ``prompt(message, hide_input)`` asks for SSH credentials. Remote sessions
    are opened lazily, reused for the whole invocation and closed on exit.
    """

    def __init__(
        self,
        config: HpxConfig | None = None,
        registry: Registry | None = None,
        confirm: Confirm | None = None,
        prompt: Prompt | None = None,
        target_factory: TargetFactory | None = None,
    ) -> None:
        self.config = config or HpxConfig.load()
        self.registry = registry or Registry(self.config.registry_path)
        self._confirm = confirm or _decline
        self._prompt = prompt or _no_prompt
        self._target_factory = target_factory
        self._sessions: dict[tuple[str, int], RemoteSession] = {}
        self._passwords: dict[str, str] = {}
        self._stop_event = threading.Event()
        self.state: LifecycleState | None = None

    def __enter__(self) -> Orchestrator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
        self._passwords.clear()

    # --- Build ---

    def generate(self, policy: Policy, no_confirm: bool = False) -> Path:
        """Render the policy to ``generated.c``. Returns the source path."""
        if not no_confirm and not self._confirm(
            f"Generate XDP program '{policy.program_name}' from this policy?"
        ):
            raise Cancelled()
        source = generate_source(policy)
        path = write_source(source, self.config.source_path)
        self.state = LifecycleState.GENERATED
        return path

    def compile(self, source_path: Path | None = None) -> Path:
        source_path = source_path or self.config.source_path
        if not source_path.exists():
            raise HpxError(f"No generated source at {source_path}; run 'hpx generate' first")
        ensure_vmlinux_header(source_path.parent, self.config.bpftool)
        object_path = compile_source(
            source_path, source_path.with_suffix(".o"), self.config.clang
        )
        self.state = LifecycleState.COMPILED
        return object_path

    def build(self, policy: Policy, no_confirm: bool = False) -> Path:
        return self.compile(self.generate(policy, no_confirm=no_confirm))

    # --- Targets ---

    def target_for(self, policy: Policy) -> BpfTarget:
        if self._target_factory is not None:
            return self._target_factory(policy)
        if policy.is_local:
            return LocalTarget(self.config.bpftool, timeout=self.config.command_timeout)
        return RemoteTarget(
            self._session_for(policy),
            bpftool=self.config.bpftool,
            stage_dir=self.config.remote_stage_dir,
        )

    def _session_for(self, policy: Policy) -> RemoteSession:
        if policy.target is None:
            raise ConfigurationError(f"Policy '{policy.name}' has no remote target")
        host = policy.target.host
        port = policy.target.port or DEFAULT_SSH_PORT
        session = self._sessions.get((host, port))
        if session is not None:
            return session

        username = policy.target.username or self._prompt(f"Username for {host}: ", False)
        if host not in self._passwords:
            self._passwords[host] = self._prompt(f"Password for {username}@{host}: ", True)
        session = RemoteSession(
            host,
            port,
            Credentials(username, self._passwords[host]),
            timeout=self.config.command_timeout,
        )
        session.connect()
        self._sessions[(host, port)] = session
        return session

    # --- Load ---

    def load(
        self,
        policy: Policy,
        interface: str | None = None,
        attach_flags: str = "generic",
        mode: LoadMode = LoadMode.PERSISTENT,
        no_confirm: bool = False,
        object_path: Path | None = None,
        on_change: Callable[[MonitorState], None] | None = None,
    ) -> int | None:
        """Load and attach the compiled program.

        Persistent loads return the program id and are recorded in the
        registry. Temporary loads block in the monitor loop until ``stop()``
        and return None once the program has been detached.
        """
        attach_mode = xdp_attach_mode(attach_flags)
        object_path = object_path or self.config.object_path
        if not object_path.exists():
            raise HpxError(f"No compiled program at {object_path}; run 'hpx generate' first")
        if mode is LoadMode.TEMPORARY and not policy.is_local:
            raise ConfigurationError("Temporary mode is only available for local targets")

        iface = resolve_interface(
            policy.network_interface, interface, self._confirm, no_confirm=no_confirm
        )
        existing = self.registry.find(name=policy.program_name, target=policy.target_label)
        if mode is LoadMode.PERSISTENT and existing is not None:
            raise TargetError(
                f"Program '{existing.name}' is already loaded on {existing.target} "
                f"(id {existing.id}); unload it first"
            )

        target = self.target_for(policy)
        if not target.interface_exists(iface):
            raise TargetError(f"Network interface '{iface}' does not exist on {target.label}")

        if mode is LoadMode.TEMPORARY:
            with self.temporary_attachment(target, policy, object_path, iface, attach_mode) as loaded:
                self.state = LifecycleState.LOCAL_TEMPORARY
                self._monitor_until_stopped(target, policy, loaded, on_change)
            self.state = LifecycleState.UNLOADED
            return None

        loaded = self._load_persistent(target, policy, object_path, iface, attach_mode)
        self.registry.add(
            RegistryEntry(
                id=loaded.program_id,
                name=policy.program_name,
                target=policy.target_label,
                interface=iface,
                attach_flags=attach_flags.strip().lower(),
                preload={
                    name: list(policy.preload_for(name))
                    for name in policy.enabled_lists()
                    if policy.preload_for(name)
                },
            )
        )
        self.state = (
            LifecycleState.LOCAL_PERSISTENT if policy.is_local else LifecycleState.REMOTE_PERSISTENT
        )
        return loaded.program_id

    @contextmanager
    def temporary_attachment(
        self,
        target: BpfTarget,
        policy: Policy,
        object_path: Path,
        interface: str,
        attach_mode: str,
    ) -> Iterator[LoadedProgram]:
        """Pin, seed and attach for the duration of the ``with`` block.

        The program is detached and unpinned on every exit path.
        """
        pin = self.config.pin_path(f"hpx_{policy.program_name}_{os.getpid()}")
        target.load_program(target.stage_object(object_path), pin)
        attached = False
        try:
            program_id = self._resolve_program_id(target, policy)
            map_ids = self._resolve_map_ids(target, program_id, policy)
            self._seed(target, policy, map_ids)
            target.attach_interface(program_id, interface, attach_mode)
            attached = True
            yield LoadedProgram(program_id, map_ids, pin, interface, attach_mode)
        finally:
            if attached:
                try:
                    target.detach_interface(interface, attach_mode)
                except HpxError as e:
                    logger.error("Could not detach %s from %s: %s", attach_mode, interface, e)
            try:
                target.remove_pin(pin)
            except HpxError as e:
                logger.error("Could not remove pin %s: %s", pin, e)
            logger.info("Temporary program %s detached", policy.program_name)

    def _load_persistent(
        self,
        target: BpfTarget,
        policy: Policy,
        object_path: Path,
        interface: str,
        attach_mode: str,
    ) -> LoadedProgram:
        pin = self.config.pin_path(policy.program_name)
        target.load_program(target.stage_object(object_path), pin)
        program_id = self._resolve_program_id(target, policy)
        map_ids = self._resolve_map_ids(target, program_id, policy)
        self._seed(target, policy, map_ids)
        target.attach_interface(program_id, interface, attach_mode)
        logger.info(
            "Program %s (id %d) attached to %s on %s",
            policy.program_name,
            program_id,
            interface,
            target.label,
        )
        return LoadedProgram(program_id, map_ids, pin, interface, attach_mode)

    def _monitor_until_stopped(
        self,
        target: BpfTarget,
        policy: Policy,
        loaded: LoadedProgram,
        on_change: Callable[[MonitorState], None] | None,
    ) -> None:
        state = MonitorState(
            program_name=policy.program_name,
            interface=loaded.interface,
            program_id=loaded.program_id,
            preloaded={name: len(policy.preload_for(name)) for name in loaded.map_ids},
        )
        monitor = MapMonitor(
            target,
            state,
            loaded.map_ids,
            poll_interval=self.config.poll_interval,
            on_change=on_change,
            stop_event=self._stop_event,
        )
        monitor.run()

    def stop(self) -> None:
        """Ask a temporary-mode load to detach and return.

        Sticky for the rest of this orchestrator: a request that arrives
        while the program is still being pinned or attached ends the load as
        soon as setup completes.
        """
        self._stop_event.set()

    # --- Unload ---

    def unload(
        self,
        policy: Policy,
        interface: str | None = None,
        attach_flags: str | None = None,
        program_id: int | None = None,
        no_confirm: bool = False,
    ) -> RegistryEntry:
        """Detach and unpin a persistently loaded program, then forget it."""
        if program_id is not None:
            entry = self.registry.find(program_id=program_id)
        else:
            entry = self.registry.find(name=policy.program_name, target=policy.target_label)
        if entry is None:
            what = (
                f"program id {program_id}"
                if program_id is not None
                else f"'{policy.program_name}'"
            )
            raise NothingToUnloadError(f"Nothing to unload: {what} is not loaded")
        if entry.target != policy.target_label:
            raise ConfigurationError(
                f"Program {entry.id} was loaded on {entry.target}, but the policy "
                f"targets {policy.target_label}; unload it with the policy it was loaded with"
            )

        attach_mode = xdp_attach_mode(attach_flags or entry.attach_flags)
        iface = resolve_interface(
            entry.interface or policy.network_interface,
            interface,
            self._confirm,
            no_confirm=no_confirm,
        )

        target = self.target_for(policy)
        target.detach_interface(iface, attach_mode)
        target.remove_pin(self.config.pin_path(entry.name))
        self.registry.remove(entry)
        self.state = LifecycleState.UNLOADED
        logger.info("Unloaded program %s (id %d) from %s", entry.name, entry.id, target.label)
        return entry

    # --- Maps ---

    def get_map_data(self, policy: Policy, map_name: str) -> list[MapRecord]:
        """Decode the current contents of one of the policy's maps."""
        target = self.target_for(policy)
        entry = self.registry.find(name=policy.program_name, target=policy.target_label)
        if entry is not None:
            map_ids = self._program_map_ids(target, entry.id)
        else:
            map_ids = None
        return read_map(target, self._find_map(target, map_name, map_ids))

    # --- Resolution helpers ---

    def _resolve_program_id(self, target: BpfTarget, policy: Policy) -> int:
        """Newest program whose kernel name matches the policy's."""
        name = policy.program_name[:KERNEL_NAME_LEN]
        ids = [
            int(prog["id"])
            for prog in target.show_programs()
            if prog.get("name") == name and "id" in prog
        ]
        if not ids:
            raise TargetError(f"Program '{policy.program_name}' not found on {target.label}")
        return max(ids)

    def _program_map_ids(self, target: BpfTarget, program_id: int) -> set[int]:
        info = target.show_program(program_id)
        return {int(map_id) for map_id in info.get("map_ids", [])}

    def _resolve_map_ids(
        self, target: BpfTarget, program_id: int, policy: Policy
    ) -> dict[str, int]:
        owned = self._program_map_ids(target, program_id)
        return {name: self._find_map(target, name, owned) for name in policy.enabled_lists()}

    def _find_map(self, target: BpfTarget, map_name: str, among: set[int] | None) -> int:
        name = map_name[:KERNEL_NAME_LEN]
        ids = [
            int(m["id"])
            for m in target.show_maps()
            if m.get("name") == name and (among is None or int(m["id"]) in among)
        ]
        if not ids:
            raise TargetError(f"Map '{map_name}' not found on {target.label}")
        return max(ids)

    def _seed(self, target: BpfTarget, policy: Policy, map_ids: dict[str, int]) -> None:
        for name, map_id in map_ids.items():
            ips = policy.preload_for(name)
            if ips:
                count = seed_map(target, map_id, ips, map_name=name)
                logger.info("Preloaded %d IPs into %s", count, name)
