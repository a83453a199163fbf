from __future__ import annotations

from fastapi import FastAPI

from .phoneHomeAPI import router as phone_home_router
from .statusAPI import router as status_router

__all__ = [
    "phone_home_router",
    "status_router",
    "register",
]


def register(app: FastAPI) -> None:
    app.include_router(phone_home_router)
    app.include_router(status_router)
