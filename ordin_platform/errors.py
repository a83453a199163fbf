# ordin_platform/errors.py
# Ordin - error taxonomy
# Copyright (c) 2025-2026 Ordin / Cenodude
"""
Error taxonomy.

Callers react per type:
DnsUpdateFailed / ProvisioningFailed mean an external tool said no; the
captured stderr is attached.
AddressParseError means nothing was sent anywhere.
InventorySerializationError means the inventory file is unreadable or
unwritable and needs a human.
"""
from __future__ import annotations

from typing import Optional


class OrdinError(Exception):
    """Base class for all ordin exceptions."""


class ConfigError(OrdinError):
    """Configuration file missing pieces, unreadable or not JSON."""


class RegistrationError(OrdinError):
    """Base class for failures raised by a registration service run."""


class RegistrationIOError(RegistrationError):
    """Launching or talking to an external process, or file I/O, failed."""


class AddressParseError(RegistrationError):
    """An address or hostname literal cannot be embedded safely."""


class InventorySerializationError(RegistrationError):
    """The inventory file could not be parsed or written as YAML."""


class ExternalCommandFailed(RegistrationError):
    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.returncode is not None:
            base = f"{base} (exit {self.returncode})"
        err = (self.stderr or "").strip()
        if err:
            base = f"{base}: {err.splitlines()[-1]}"
        return base


class DnsUpdateFailed(ExternalCommandFailed):
    """nsupdate exited non-zero."""


class ProvisioningFailed(ExternalCommandFailed):
    """ansible-playbook exited non-zero for one of the playbooks."""

    def __init__(self, message: str, *, playbook: str = "", returncode: Optional[int] = None, stderr: str = "") -> None:
        super().__init__(message, returncode=returncode, stderr=stderr)
        self.playbook = playbook


__all__ = [
    "OrdinError",
    "ConfigError",
    "RegistrationError",
    "RegistrationIOError",
    "AddressParseError",
    "InventorySerializationError",
    "ExternalCommandFailed",
    "DnsUpdateFailed",
    "ProvisioningFailed",
]
