# Ordin test scripts
from __future__ import annotations

from pathlib import Path

import pytest

from ordin_platform.errors import AddressParseError, DnsUpdateFailed, RegistrationIOError
from services._types import Target
from services.dns import DnsRegistrationService, render_address


def _svc(zone: str = "example.com.", domain: str = "lab.local", **kw) -> DnsRegistrationService:
    return DnsRegistrationService("10.0.0.53", zone, 300, domain, **kw)


def test_record_name_appends_zone_when_fqdn_is_outside_it() -> None:
    assert _svc().record_name(Target("10.1.2.3", "host1")) == "host1.lab.local.example.com."


def test_record_name_kept_when_fqdn_already_in_zone() -> None:
    svc = _svc(zone="lab.local", domain="lab.local")
    assert svc.record_name(Target("10.1.2.3", "host1")) == "host1.lab.local"


def test_ipv6_is_rendered_fully_expanded() -> None:
    assert render_address("2001:db8::1") == ("AAAA", "2001:0db8:0000:0000:0000:0000:0000:0001")
    assert render_address("2001:DB8:0:0:0:0:0:ABCD")[1] == "2001:0db8:0000:0000:0000:0000:0000:abcd"


def test_ipv4_passes_through() -> None:
    assert render_address("192.0.2.7") == ("A", "192.0.2.7")


@pytest.mark.parametrize("addr", ["2001:db8:::1", "zz::1", "300.1.1.1", "10.0.0.1\nupdate delete x", "", "host"])
def test_bad_addresses_are_rejected(addr: str) -> None:
    with pytest.raises(AddressParseError):
        render_address(addr)


def test_transaction_lines() -> None:
    lines = _svc().build_transaction(Target("2001:db8::1", "host1"))
    assert lines == [
        "server 10.0.0.53",
        "zone example.com.",
        "update add host1.lab.local.example.com. 300 AAAA 2001:0db8:0000:0000:0000:0000:0000:0001",
        "send",
        "quit",
    ]
    v4 = _svc().build_transaction(Target("192.0.2.7", "host1"))
    assert v4[2] == "update add host1.lab.local.example.com. 300 A 192.0.2.7"


def test_unsafe_record_name_is_refused() -> None:
    with pytest.raises(AddressParseError):
        _svc(zone="example.com. IN TXT x").build_transaction(Target("192.0.2.7", "host1"))


@pytest.mark.parametrize("hostname", ["host1 IN TXT x", "a/b", "host1\nsend", "-dash", "../etc"])
def test_target_refuses_unsafe_hostnames(hostname: str) -> None:
    with pytest.raises(ValueError):
        Target("192.0.2.7", hostname)


def test_run_feeds_transaction_to_nsupdate(tmp_path: Path, make_script) -> None:
    captured = tmp_path / "stdin.txt"
    binary = make_script("nsupdate", f'cat > "{captured}"\nexit 0\n')
    svc = _svc(binary=str(binary))

    target = Target("192.0.2.7", "host1")
    svc.run(target)
    svc.run(target)  # re-registering the same host is not an error

    assert captured.read_text("utf-8").splitlines() == svc.build_transaction(target)


def test_run_fails_on_non_zero_exit(make_script) -> None:
    binary = make_script("nsupdate", 'cat >/dev/null\necho "update failed: REFUSED" >&2\nexit 2\n')
    with pytest.raises(DnsUpdateFailed) as ei:
        _svc(binary=str(binary)).run(Target("192.0.2.7", "host1"))
    assert ei.value.returncode == 2
    assert "REFUSED" in str(ei.value)


def test_missing_binary_is_an_io_error(tmp_path: Path) -> None:
    svc = _svc(binary=str(tmp_path / "no-such-nsupdate"))
    with pytest.raises(RegistrationIOError):
        svc.run(Target("192.0.2.7", "host1"))


def test_bad_address_never_launches_the_updater(tmp_path: Path, make_script) -> None:
    marker = tmp_path / "ran"
    binary = make_script("nsupdate", f'touch "{marker}"\nexit 0\n')
    with pytest.raises(AddressParseError):
        _svc(binary=str(binary)).run(Target("not-an-ip", "host1"))
    assert not marker.exists()
