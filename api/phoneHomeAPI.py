# /api/phoneHomeAPI.py
# Ordin - phone-home endpoint
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import Response

from _logging import log
from services._types import Target

router = APIRouter(tags=["phone-home"])

_log = log.child("http")


def _strip_port(addr: str) -> str:
    a = (addr or "").strip()
    if a.startswith("["):
        # [v6]:port or [v6]
        end = a.find("]")
        return a[1:end] if end > 0 else a.strip("[]")
    if a.count(":") == 1:
        # v4:port
        return a.split(":", 1)[0]
    return a


def sender_address(request: Request) -> str:
    """Real sender: first X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    fwd = str(request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if fwd:
        return _strip_port(fwd)
    real = str(request.headers.get("x-real-ip") or "").strip()
    if real:
        return _strip_port(real)
    client = request.client
    return _strip_port(client.host) if client else ""


@router.post("/phone-home")
@router.post("/phone-home/", include_in_schema=False)
def phone_home(request: Request, hostname: str = Form(..., min_length=1)) -> Response:
    hostname = hostname.strip()
    ip = sender_address(request)
    if not ip:
        raise HTTPException(status_code=400, detail="cannot determine sender address")
    try:
        Target(ip, hostname)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    _log.debug(f"phone-home from {ip} claiming {hostname}")
    request.app.state.dispatcher.dispatch(ip, hostname)
    return Response(status_code=200)
