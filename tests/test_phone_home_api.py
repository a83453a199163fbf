# Ordin test scripts
from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from ordin import create_app
from ordin_platform.config_base import Config
from services.inventory import InventoryStore


class RecordingDispatcher:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def dispatch(self, address: str, hostname: str) -> int:
        self.calls.append((address, hostname))
        return len(self.calls)

    def running(self) -> int:
        return 0

    def status(self, limit: int = 20) -> dict:
        units = [
            {"id": i + 1, "hostname": h, "address": a, "started_at": 1, "finished_at": 2,
             "step": "ansible", "ok": True, "error": ""}
            for i, (a, h) in enumerate(self.calls)
        ]
        return {"running": 0, "finished": len(units), "failed": 0, "units": units[:limit]}


def _client(tmp_path: Path) -> tuple[TestClient, RecordingDispatcher, InventoryStore]:
    disp = RecordingDispatcher()
    store = InventoryStore(tmp_path / "inventory.yml")
    app = create_app(Config(domain="lab.local"), dispatcher=disp, inventory=store)  # type: ignore[arg-type]
    return TestClient(app), disp, store


def test_phone_home_acknowledges_immediately(tmp_path: Path) -> None:
    client, disp, _ = _client(tmp_path)
    r = client.post("/phone-home", data={"hostname": "host1"})
    assert r.status_code == 200
    assert r.content == b""
    assert disp.calls == [("testclient", "host1")]


def test_trailing_slash_is_accepted(tmp_path: Path) -> None:
    client, disp, _ = _client(tmp_path)
    r = client.post("/phone-home/", data={"hostname": "host1"}, headers={"X-Forwarded-For": "10.1.2.3"})
    assert r.status_code == 200
    assert disp.calls == [("10.1.2.3", "host1")]


def test_forwarded_addresses_lose_brackets_and_ports(tmp_path: Path) -> None:
    client, disp, _ = _client(tmp_path)
    for hdr in ("[2001:db8::1]:51234, 10.0.0.1", "10.1.2.3:8080", "2001:db8::2"):
        client.post("/phone-home", data={"hostname": "h"}, headers={"X-Forwarded-For": hdr})
    client.post("/phone-home", data={"hostname": "h"}, headers={"X-Real-IP": "[2001:db8::3]"})
    assert [a for a, _ in disp.calls] == ["2001:db8::1", "10.1.2.3", "2001:db8::2", "2001:db8::3"]


def test_missing_or_empty_hostname_is_422(tmp_path: Path) -> None:
    client, disp, _ = _client(tmp_path)
    assert client.post("/phone-home", data={}).status_code == 422
    assert client.post("/phone-home", data={"hostname": ""}).status_code == 422
    assert client.post("/phone-home", data={"hostname": "   "}).status_code == 422
    assert disp.calls == []


def test_status_and_inventory_endpoints(tmp_path: Path) -> None:
    client, _, store = _client(tmp_path)
    client.post("/phone-home", data={"hostname": "host1"}, headers={"X-Forwarded-For": "10.1.2.3"})
    store.add("host1.lab.local")

    st = client.get("/api/status").json()
    assert st["finished"] == 1
    assert st["units"][0]["hostname"] == "host1"

    inv = client.get("/api/inventory").json()
    assert inv["hosts"] == ["host1.lab.local"]
    assert inv["path"] == str(tmp_path / "inventory.yml")


def test_invalid_hostname_is_422(tmp_path: Path) -> None:
    client, disp, _ = _client(tmp_path)
    assert client.post("/phone-home", data={"hostname": "a/b"}).status_code == 422
    assert client.post("/phone-home", data={"hostname": "host1 IN TXT x"}).status_code == 422
    assert disp.calls == []


def test_inventory_listing_does_not_create_the_file(tmp_path: Path) -> None:
    client, _, store = _client(tmp_path)
    r = client.get("/api/inventory")
    assert r.status_code == 200
    assert r.json()["hosts"] == []
    assert not store.path.exists()
