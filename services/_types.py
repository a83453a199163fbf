# services/_types.py
# Ordin - registration target and service contract
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

# DNS label characters only; the hostname ends up in record names, ansible limits and file names
_HOSTNAME = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]*")


@dataclass(frozen=True)
class Target:
    """One phone-home subject: the sender address and the hostname it claims."""

    address: str
    hostname: str

    def __post_init__(self) -> None:
        if not (self.hostname or "").strip():
            raise ValueError("hostname must not be empty")
        if not _HOSTNAME.fullmatch(self.hostname):
            raise ValueError(f"invalid hostname {self.hostname!r}")

    def fqdn(self, domain: str) -> str:
        return f"{self.hostname}.{domain}"

    def __str__(self) -> str:
        return f"{self.hostname}@{self.address}"


class RegistrationService(Protocol):
    """
    Anything that can register a target.

    run must be idempotent: running twice for the same target leaves the same
    end state and does not fail because the target is already known.
    Failures are raised as RegistrationError subclasses.
    """

    name: str

    def run(self, target: Target) -> None: ...
