# services/dispatcher.py
# Ordin - one background unit per phone-home: DNS first, then provisioning
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations

import itertools
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence

from _logging import log
from ordin_platform.errors import RegistrationError
from services._types import RegistrationService, Target

_log = log.child("phone-home")

HISTORY_SIZE = 100


def _now_ts() -> int:
    return int(time.time())


class Dispatcher:
    """
    Runs the registration services for each event on its own daemon thread.

    Services run in the given order and a failing step stops the unit. Errors
    end at the unit boundary: they are logged and recorded, nothing else in
    the process sees them.
    """

    def __init__(self, services: Sequence[RegistrationService], *, history: int = HISTORY_SIZE) -> None:
        self.services = tuple(services)
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._threads: Dict[int, threading.Thread] = {}
        self._units: Deque[Dict[str, Any]] = deque(maxlen=max(1, int(history)))
        self._finished = 0
        self._failed = 0

    def dispatch(self, address: str, hostname: str) -> int:
        target = Target(address, hostname)
        with self._lock:
            unit_id = next(self._ids)
            unit = {
                "id": unit_id,
                "hostname": target.hostname,
                "address": target.address,
                "started_at": _now_ts(),
                "finished_at": 0,
                "step": "",
                "ok": None,
                "error": "",
            }
            self._units.append(unit)
            th = threading.Thread(
                target=self._run_unit,
                args=(unit_id, target, unit),
                name=f"phone-home-{target.hostname}-{target.address}",
                daemon=True,
            )
            self._threads[unit_id] = th
        try:
            th.start()
        except RuntimeError as e:
            with self._lock:
                self._threads.pop(unit_id, None)
                unit["ok"] = False
                unit["error"] = f"{type(e).__name__}: {e}"
                unit["finished_at"] = _now_ts()
                self._finished += 1
                self._failed += 1
            _log.error(f"registration #{unit_id} for {target} could not be started: {e}",
                       extra={"target": str(target), "step": "", "error": type(e).__name__})
            raise
        _log.info(f"scheduled registration #{unit_id} for {target}")
        return unit_id

    def _run_unit(self, unit_id: int, target: Target, unit: Dict[str, Any]) -> None:
        step = ""
        ok = False
        err = ""
        try:
            for svc in self.services:
                step = svc.name
                with self._lock:
                    unit["step"] = step
                svc.run(target)
            ok = True
            _log.success(f"registration #{unit_id} for {target} done")
        except RegistrationError as e:
            err = str(e)
            _log.error(f"registration #{unit_id} for {target} failed at step {step}: {e}",
                       extra={"target": str(target), "step": step, "error": type(e).__name__})
        except Exception as e:
            err = f"{type(e).__name__}: {e}"
            _log.error(f"registration #{unit_id} for {target} crashed at step {step}: {err}",
                       extra={"target": str(target), "step": step, "error": type(e).__name__})
        finally:
            with self._lock:
                unit["ok"] = ok
                unit["error"] = err
                unit["finished_at"] = _now_ts()
                self._finished += 1
                if not ok:
                    self._failed += 1
                self._threads.pop(unit_id, None)

    def running(self) -> int:
        with self._lock:
            return len(self._threads)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight units. False when some are still running at the deadline."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = list(self._threads.values())
            if not pending:
                return True
            for th in pending:
                left = None if deadline is None else max(0.0, deadline - time.monotonic())
                th.join(left)
            if deadline is not None and time.monotonic() >= deadline:
                return self.running() == 0

    def status(self, limit: int = 20) -> Dict[str, Any]:
        with self._lock:
            recent: List[Dict[str, Any]] = [dict(u) for u in list(self._units)[-max(0, int(limit)):]] if limit else []
            return {
                "running": len(self._threads),
                "finished": self._finished,
                "failed": self._failed,
                "units": list(reversed(recent)),
            }


__all__ = ["Dispatcher", "HISTORY_SIZE"]
