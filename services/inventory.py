# services/inventory.py
# Ordin - YAML host inventory consumed by ansible-playbook
# Copyright (c) 2025-2026 Ordin / Cenodude
"""
File-backed inventory.

Layout on disk (the ansible YAML inventory format):

    all:
      children:
        cloud-init:
          hosts:
            host1.lab.local: null

Every store pointing at the same file shares one lock, so read-modify-write
cycles from concurrent registrations cannot overwrite each other.
"""
from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from _logging import log
from ordin_platform.errors import InventorySerializationError, RegistrationIOError

_log = log.child("inventory")

DEFAULT_GROUP = "cloud-init"

_PATH_LOCKS: Dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = os.path.abspath(os.fspath(path))
    with _PATH_LOCKS_GUARD:
        lk = _PATH_LOCKS.get(key)
        if lk is None:
            lk = _PATH_LOCKS[key] = threading.Lock()
        return lk


def default_inventory() -> Dict[str, Any]:
    return {"all": {"children": {DEFAULT_GROUP: {"hosts": {}}}}}


def _groups(inventory: Dict[str, Any]) -> Dict[str, Any]:
    return inventory["all"]["children"]


def _validate(doc: Any, path: Path) -> Dict[str, Any]:
    if not isinstance(doc, dict) or not isinstance(doc.get("all"), dict):
        raise InventorySerializationError(f"inventory {path} has no 'all' mapping")
    children = doc["all"].get("children")
    if children is None:
        children = doc["all"]["children"] = {}
    if not isinstance(children, dict):
        raise InventorySerializationError(f"inventory {path}: 'all.children' is not a mapping")
    for name, group in list(children.items()):
        if group is None:
            group = children[name] = {}
        if not isinstance(group, dict):
            raise InventorySerializationError(f"inventory {path}: group {name!r} is not a mapping")
        hosts = group.get("hosts")
        if hosts is None:
            group["hosts"] = {}
        elif not isinstance(hosts, dict):
            raise InventorySerializationError(f"inventory {path}: hosts of group {name!r} is not a mapping")
    return doc


def contains(inventory: Dict[str, Any], fqdn: str) -> bool:
    """True when any group lists fqdn."""
    return any(fqdn in (group.get("hosts") or {}) for group in _groups(inventory).values())


class InventoryStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    def __repr__(self) -> str:
        return f"InventoryStore({str(self.path)!r})"

    # IO
    def _write(self, inventory: Dict[str, Any]) -> None:
        tmp = self.path.with_name(f".{self.path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
        try:
            text = yaml.safe_dump(inventory, default_flow_style=False, sort_keys=False)
        except yaml.YAMLError as e:
            raise InventorySerializationError(f"cannot serialize inventory {self.path}: {e}") from e
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(text, encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise RegistrationIOError(f"cannot write inventory {self.path}: {e}") from e

    def _create_default(self) -> Dict[str, Any]:
        _log.debug(f"creating default inventory at {self.path}")
        inventory = default_inventory()
        self._write(inventory)
        return inventory

    def _read_unlocked(self) -> Dict[str, Any]:
        if not self.path.exists():
            return self._create_default()
        _log.trace(f"reading inventory {self.path}")
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise RegistrationIOError(f"cannot read inventory {self.path}: {e}") from e
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise InventorySerializationError(f"cannot parse inventory {self.path}: {e}") from e
        return _validate(doc, self.path)

    # Public API
    def read(self) -> Dict[str, Any]:
        """Current inventory; a missing file is created with the default group."""
        with self._lock:
            return self._read_unlocked()

    def contains(self, fqdn: str) -> bool:
        return contains(self.read(), fqdn)

    def add(self, fqdn: str, group: str = DEFAULT_GROUP, value: Optional[str] = None) -> None:
        with self._lock:
            self._add_unlocked(fqdn, group, value)

    def _add_unlocked(self, fqdn: str, group: str, value: Optional[str]) -> None:
        inventory = self._read_unlocked()
        grp = _groups(inventory).setdefault(group, {"hosts": {}})
        grp["hosts"][fqdn] = value
        self._write(inventory)
        _log.info(f"added {fqdn} to inventory group {group}")

    def ensure(self, fqdn: str, group: str = DEFAULT_GROUP) -> bool:
        """Add fqdn unless some group already has it. True when it was added."""
        with self._lock:
            if contains(self._read_unlocked(), fqdn):
                _log.trace(f"{fqdn} already in inventory")
                return False
            self._add_unlocked(fqdn, group, None)
            return True

    def hosts(self) -> List[str]:
        out = set()
        for group in _groups(self.read()).values():
            out.update(group.get("hosts") or {})
        return sorted(out)


__all__ = ["InventoryStore", "DEFAULT_GROUP", "default_inventory", "contains"]
