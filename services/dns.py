# services/dns.py
# Ordin - dynamic DNS registration through nsupdate
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

import ipaddress
import re
import subprocess
from typing import List, Tuple

from _logging import log
from ordin_platform.config_base import Config
from ordin_platform.errors import AddressParseError, DnsUpdateFailed, RegistrationIOError
from services._types import Target

_log = log.child("dns")

# labels only; anything else could smuggle tokens or lines into the transaction
_SAFE_NAME = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]*")


def render_address(address: str) -> Tuple[str, str]:
    """Return (record type, address as written into the update)."""
    raw = (address or "").strip()
    if ":" in raw:
        try:
            ip6 = ipaddress.IPv6Address(raw)
        except ValueError as e:
            raise AddressParseError(f"invalid IPv6 address {raw!r}: {e}") from e
        # eight groups of four lowercase hex digits
        return "AAAA", ip6.exploded.split("%", 1)[0]
    try:
        ip4 = ipaddress.IPv4Address(raw)
    except ValueError as e:
        raise AddressParseError(f"invalid IPv4 address {raw!r}: {e}") from e
    return "A", str(ip4)


class DnsRegistrationService:
    name = "dns"

    def __init__(
        self,
        server: str,
        zone: str,
        ttl: int,
        domain: str,
        *,
        binary: str = "nsupdate",
    ) -> None:
        self.server = server
        self.zone = zone
        self.ttl = int(ttl)
        self.domain = domain
        self.binary = binary or "nsupdate"

    @classmethod
    def from_config(cls, config: Config) -> "DnsRegistrationService":
        return cls(
            config.dns.server,
            config.dns.zone_name,
            config.dns.ttl,
            config.domain,
            binary=config.dns.nsupdate_binary,
        )

    def __repr__(self) -> str:
        return f"DnsRegistrationService(server={self.server!r}, zone={self.zone!r}, ttl={self.ttl}, domain={self.domain!r})"

    def record_name(self, target: Target) -> str:
        fqdn = target.fqdn(self.domain)
        if fqdn.endswith(self.zone):
            return fqdn
        return f"{fqdn}.{self.zone}"

    def build_transaction(self, target: Target) -> List[str]:
        """The nsupdate script for target, one command per entry."""
        record = self.record_name(target)
        if not _SAFE_NAME.fullmatch(record):
            raise AddressParseError(f"refusing to register unsafe record name {record!r}")
        rtype, addr = render_address(target.address)
        return [
            f"server {self.server}",
            f"zone {self.zone}",
            f"update add {record} {self.ttl} {rtype} {addr}",
            "send",
            "quit",
        ]

    def run(self, target: Target) -> None:
        lines = self.build_transaction(target)
        for line in lines:
            _log.trace(f"nsupdate: {line}")

        try:
            proc = subprocess.run(
                [self.binary],
                input="".join(f"{line}\n" for line in lines),
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as e:
            raise RegistrationIOError(f"cannot run {self.binary}: {e}") from e

        _log.debug(f"nsupdate stdout: {proc.stdout!r}")
        _log.debug(f"nsupdate stderr: {proc.stderr!r}")

        if proc.returncode != 0:
            raise DnsUpdateFailed(
                f"nsupdate failed for {target}",
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        _log.trace(f"nsupdate completed successfully for {target}")


__all__ = ["DnsRegistrationService", "render_address"]
