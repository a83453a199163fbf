# /ordin.py
# Ordin - phone-home DNS registration and provisioning server
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

import argparse
import os
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI, Request

from _logging import level_from_verbosity, log
from api import register as register_api
from ordin_platform.config_base import Config, config_path
from ordin_platform.errors import OrdinError
from services import Dispatcher, InventoryStore, build_dispatcher

__version__ = "0.2.0"

_log = log.child("ordin")
_http = log.child("http")


def create_app(
    config: Config,
    *,
    dispatcher: Optional[Dispatcher] = None,
    inventory: Optional[InventoryStore] = None,
) -> FastAPI:
    dispatcher = dispatcher or build_dispatcher(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log.info(f"Starting ordin v{__version__}")
        yield
        n = dispatcher.running()
        if n:
            _log.warn(f"shutting down with {n} registration(s) still running")

    app = FastAPI(title="ordin", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.dispatcher = dispatcher
    app.state.inventory = inventory or InventoryStore(config.ansible.inventory)

    @app.middleware("http")
    async def access_logger(request: Request, call_next):
        t0 = time.time()
        client = request.client
        status = 500
        try:
            response = await call_next(request)
            status = getattr(response, "status_code", 0) or 0
            return response
        finally:
            if status >= 500 or _http.is_enabled("debug"):
                dt_ms = int((time.time() - t0) * 1000)
                host = f"{client.host}:{client.port}" if client else "-"
                msg = f'{host} - "{request.method} {request.url.path}" {status} ({dt_ms} ms)'
                if status >= 500:
                    _http.error(msg)
                else:
                    _http.debug(msg)

    register_api(app)
    return app


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="ordin", description="phone-home DNS registration and provisioning server")
    p.add_argument("-v", "--verbose", action="count", default=None, help="more output (repeatable, -vvvv = trace)")
    p.add_argument("-c", "--config", type=Path, default=None, help=f"config file (default {config_path()})")
    p.add_argument("--host", default=None, help="bind address (overrides config)")
    p.add_argument("--port", type=int, default=None, help="bind port (overrides config)")
    return p.parse_args(argv)


# Entry point
def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)

    try:
        config = Config.load(args.config)
    except OrdinError as e:
        _log.error(f"Failed to load config: {e}")
        sys.exit(1)

    level = level_from_verbosity(args.verbose) if args.verbose is not None else config.runtime.log_level
    log.configure(level=level, json_path=config.runtime.log_json, use_color=sys.stderr.isatty())

    try:
        app = create_app(config)
    except OrdinError as e:
        _log.error(f"Failed to set up services: {e}")
        sys.exit(1)

    host = args.host or os.getenv("ORDIN_HOST") or config.server.host
    port = args.port or int(os.getenv("ORDIN_PORT") or config.server.port)

    _log.info(f"listening on [{host}]:{port}, config {args.config or config_path()}")
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=("debug" if log.is_enabled("debug") else "warning"),
        access_log=log.is_enabled("trace"),
    )


if __name__ == "__main__":
    main()
