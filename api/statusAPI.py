# /api/statusAPI.py
# Ordin - registration status and inventory listing
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from ordin_platform.errors import RegistrationError

router = APIRouter(prefix="/api", tags=["status"])


class UnitOut(BaseModel):
    id: int
    hostname: str
    address: str
    started_at: int
    finished_at: int
    step: str
    ok: Optional[bool] = None
    error: str = ""


class StatusOut(BaseModel):
    running: int
    finished: int
    failed: int
    units: List[UnitOut]


class InventoryOut(BaseModel):
    path: str
    hosts: List[str]


@router.get("/status", response_model=StatusOut)
def status(request: Request, limit: int = Query(20, ge=0, le=100)) -> Dict[str, Any]:
    return request.app.state.dispatcher.status(limit)


@router.get("/inventory", response_model=InventoryOut)
def inventory(request: Request) -> Dict[str, Any]:
    store = getattr(request.app.state, "inventory", None)
    if store is None:
        raise HTTPException(status_code=404, detail="no inventory configured")
    if not store.path.exists():
        return {"path": str(store.path), "hosts": []}
    try:
        hosts = store.hosts()
    except RegistrationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"path": str(store.path), "hosts": hosts}
