# ordin_platform/config_base.py
# Ordin - configuration loading, defaults and typed view
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from _logging import log
from ordin_platform.errors import ConfigError

_log = log.child("config")


# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /etc/ordin
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)
    return Path("/etc/ordin")


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Naming --------------------------------------------------------------
    "global": {
        "domain": "",                                   # Suffix appended to every claimed hostname (host -> host.<domain>)
    },

    # --- Dynamic DNS ---------------------------------------------------------
    "dns": {
        "server": "",                                   # Update server handed to nsupdate ("server <addr>")
        "zone_name": "",                                # Zone the records live in, e.g. "example.com."
        "ttl": 3600,                                    # Record TTL (seconds)
        "nsupdate_binary": "nsupdate",                  # Resolved through PATH unless absolute
    },

    # --- Provisioning --------------------------------------------------------
    "ansible": {
        "ansible_playbook_binary": None,                # None = "ansible-playbook" from PATH
        "playbooks": [],                                # Run in this order; missing files are dropped at startup
        "inventory": "/etc/ordin/inventory.yml",        # YAML inventory, created on first use
        "play_logs": False,                             # Write one log file per playbook run
        "play_logdir": "/var/log/ordin/",               # Where play logs go
    },

    # --- Runtime -------------------------------------------------------------
    "runtime": {
        "log_level": "info",                            # silent | error | warn | info | debug | trace
        "log_json": "",                                 # Optional JSON-lines log file
    },

    # --- HTTP ----------------------------------------------------------------
    "server": {
        "host": "::",                                   # Bind address
        "port": 4040,                                   # Bind port
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def config_path() -> Path:
    env = os.getenv("ORDIN_CONFIG")
    if env:
        return Path(env)
    return CONFIG_BASE() / "config.json"


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)  # type: ignore[assignment]
        else:
            out[k] = v
    return out


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Read config.json, merged over DEFAULT_CFG.

    A missing file is written out with the defaults first so there is
    something to edit.
    """
    p = Path(path) if path else config_path()
    if not p.exists():
        _log.trace(f"configuration file does not exist yet, writing defaults to {p}")
        try:
            _write_json_atomic(p, DEFAULT_CFG)
        except OSError as e:
            raise ConfigError(f"cannot write default configuration to {p}: {e}") from e
        _log.warn(f"A blank configuration was created at {p}. Please configure ordin properly.")
        return copy.deepcopy(DEFAULT_CFG)

    _log.trace(f"reading configuration from {p}")
    try:
        user_cfg = _read_json(p)
    except OSError as e:
        raise ConfigError(f"cannot read configuration {p}: {e}") from e
    except ValueError as e:
        raise ConfigError(f"configuration {p} is not valid JSON: {e}") from e
    if not isinstance(user_cfg, dict):
        raise ConfigError(f"configuration {p} must hold a JSON object")

    return _deep_merge(DEFAULT_CFG, user_cfg)


def save_config(cfg: Dict[str, Any], path: Optional[Path] = None) -> None:
    _write_json_atomic(Path(path) if path else config_path(), dict(cfg or {}))


# ------------------------------------------------------------
# Typed, read-only view handed to the services
# ------------------------------------------------------------
def _section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    sec = cfg.get(name)
    return sec if isinstance(sec, Mapping) else {}


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class DnsConfig:
    server: str = ""
    zone_name: str = ""
    ttl: int = 3600
    nsupdate_binary: str = "nsupdate"


@dataclass(frozen=True)
class AnsibleConfig:
    playbooks: Tuple[Path, ...] = ()
    inventory: Path = Path("/etc/ordin/inventory.yml")
    ansible_playbook_binary: Optional[Path] = None
    play_logs: bool = False
    play_logdir: Path = Path("/var/log/ordin/")


@dataclass(frozen=True)
class RuntimeConfig:
    log_level: str = "info"
    log_json: str = ""


@dataclass(frozen=True)
class ServerConfig:
    host: str = "::"
    port: int = 4040


@dataclass(frozen=True)
class Config:
    domain: str = ""
    dns: DnsConfig = DnsConfig()
    ansible: AnsibleConfig = AnsibleConfig()
    runtime: RuntimeConfig = RuntimeConfig()
    server: ServerConfig = ServerConfig()

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "Config":
        g = _section(cfg, "global")
        d = _section(cfg, "dns")
        a = _section(cfg, "ansible")
        r = _section(cfg, "runtime")
        s = _section(cfg, "server")

        playbooks = a.get("playbooks") or []
        if isinstance(playbooks, str):
            playbooks = [playbooks]
        binary = a.get("ansible_playbook_binary")

        return cls(
            domain=str(g.get("domain") or ""),
            dns=DnsConfig(
                server=str(d.get("server") or ""),
                zone_name=str(d.get("zone_name") or ""),
                ttl=_as_int(d.get("ttl"), 3600),
                nsupdate_binary=str(d.get("nsupdate_binary") or "nsupdate"),
            ),
            ansible=AnsibleConfig(
                playbooks=tuple(Path(str(p)) for p in playbooks if str(p).strip()),
                inventory=Path(str(a.get("inventory") or DEFAULT_CFG["ansible"]["inventory"])),
                ansible_playbook_binary=Path(str(binary)) if binary else None,
                play_logs=bool(a.get("play_logs", False)),
                play_logdir=Path(str(a.get("play_logdir") or DEFAULT_CFG["ansible"]["play_logdir"])),
            ),
            runtime=RuntimeConfig(
                log_level=str(r.get("log_level") or "info").strip().lower(),
                log_json=str(r.get("log_json") or ""),
            ),
            server=ServerConfig(
                host=str(s.get("host") or "::"),
                port=_as_int(s.get("port"), 4040),
            ),
        )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        return cls.from_dict(load_config(path))


__all__ = [
    "CONFIG_BASE",
    "DEFAULT_CFG",
    "config_path",
    "load_config",
    "save_config",
    "Config",
    "DnsConfig",
    "AnsibleConfig",
    "RuntimeConfig",
    "ServerConfig",
]
