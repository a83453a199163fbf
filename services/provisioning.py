# services/provisioning.py
# Ordin - inventory bookkeeping and ansible-playbook runs
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

import subprocess
import time
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from _logging import log
from ordin_platform.config_base import Config
from ordin_platform.errors import ProvisioningFailed, RegistrationIOError
from services._types import Target
from services.inventory import InventoryStore

_log = log.child("ansible")

DEFAULT_BINARY = "ansible-playbook"


def play_log_name(ts: int, playbook: Path, target: Target) -> str:
    # the address comes from request headers; keep it inside the log directory
    address = target.address.replace("/", "_").replace("\\", "_")
    return f"{ts}-ansible_playbook_{playbook.name}_{address}-{target.hostname}.log"


class ProvisioningService:
    name = "ansible"

    def __init__(
        self,
        playbooks: Iterable[Path],
        inventory: Path,
        domain: str,
        *,
        binary: Optional[Path] = None,
        play_logs: bool = False,
        play_logdir: Optional[Path] = None,
    ) -> None:
        kept: List[Path] = []
        for p in playbooks:
            p = Path(p)
            if not p.exists():
                _log.warn(f"Ansible playbook {p} does not exist, dropping it")
                continue
            kept.append(p)
        self.playbooks: Sequence[Path] = tuple(kept)

        self.inventory = InventoryStore(Path(inventory))
        if not self.inventory.path.exists():
            _log.warn(f"Inventory {self.inventory.path} does not exist (it will be created on first registration)")

        self.binary = str(binary) if binary else DEFAULT_BINARY
        self.domain = domain
        self.play_logs = bool(play_logs)
        self.play_logdir = Path(play_logdir) if play_logdir else Path("/var/log/ordin/")

        if self.play_logs and not self.play_logdir.exists():
            _log.trace(f"play log directory {self.play_logdir} does not exist, creating")
            try:
                self.play_logdir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise RegistrationIOError(f"cannot create play log directory {self.play_logdir}: {e}") from e

    @classmethod
    def from_config(cls, config: Config) -> "ProvisioningService":
        a = config.ansible
        return cls(
            a.playbooks,
            a.inventory,
            config.domain,
            binary=a.ansible_playbook_binary,
            play_logs=a.play_logs,
            play_logdir=a.play_logdir,
        )

    def __repr__(self) -> str:
        return (
            f"ProvisioningService(playbooks={[str(p) for p in self.playbooks]!r}, "
            f"inventory={str(self.inventory.path)!r}, binary={self.binary!r})"
        )

    def fqdn(self, target: Target) -> str:
        return target.fqdn(self.domain)

    def command(self, target: Target, playbook: Path) -> List[str]:
        return [self.binary, "-i", str(self.inventory.path), "-l", self.fqdn(target), str(playbook)]

    def run(self, target: Target) -> None:
        _log.debug(f"running provisioning for {target}")
        fqdn = self.fqdn(target)
        if self.inventory.ensure(fqdn):
            _log.trace(f"{fqdn} was not in the inventory, added")

        total = len(self.playbooks)
        for index, playbook in enumerate(self.playbooks, 1):
            _log.trace(f"playbook {index}/{total} for {fqdn}: {playbook}")
            self._run_playbook(target, playbook)
        _log.success(f"provisioned {fqdn} ({total} playbook(s))")

    def _run_playbook(self, target: Target, playbook: Path) -> None:
        if not playbook.exists():
            _log.warn(f"Ansible playbook {playbook} does not exist anymore, skipping")
            return

        started = int(time.time())
        try:
            proc = subprocess.run(
                self.command(target, playbook),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as e:
            raise RegistrationIOError(f"cannot run {self.binary}: {e}") from e

        if self.play_logs:
            self._write_play_log(started, playbook, target, proc.stdout, proc.stderr)

        _log.trace(f"ansible stdout: {proc.stdout}")
        _log.trace(f"ansible stderr: {proc.stderr}")

        if proc.returncode != 0:
            raise ProvisioningFailed(
                f"ansible-playbook {playbook.name} failed for {self.fqdn(target)}",
                playbook=str(playbook),
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        _log.trace(f"ansible-playbook {playbook.name} completed successfully")

    def _write_play_log(self, ts: int, playbook: Path, target: Target, stdout: str, stderr: str) -> None:
        path = self.play_logdir / play_log_name(ts, playbook, target)
        _log.trace(f"writing play log {path}")
        try:
            with path.open("w", encoding="utf-8") as f:
                f.write("STDOUT:\n")
                f.write(stdout)
                f.write("\nSTDERR:\n")
                f.write(stderr)
        except OSError as e:
            raise RegistrationIOError(f"cannot write play log {path}: {e}") from e


__all__ = ["ProvisioningService", "DEFAULT_BINARY", "play_log_name"]
