# _logging.py
# Ordin - structured logger with colored console output and optional JSON-lines output.
# Copyright (c) 2025-2026 Ordin / Cenodude
from __future__ import annotations
import sys, datetime, json, os, threading
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10, "trace": 5}

# -v counts map onto these, same ladder as the level names above
VERBOSITY = ("error", "warn", "info", "debug", "trace")


def level_from_verbosity(count: int) -> str:
    return VERBOSITY[max(0, min(int(count), len(VERBOSITY) - 1))]


def _env_level() -> Optional[str]:
    v = (os.getenv("ORDIN_LOG_LEVEL") or "").strip().lower()
    if v == "warning":
        v = "warn"
    return v if v in LEVELS else None


class Logger:
    def __init__(
        self,
        stream: Optional[TextIO] = None,
        level: str = "info",
        use_color: bool = True,
        show_time: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        tag_color_map: Optional[dict[str, str]] = None,
        *,
        _context: Optional[Dict[str, Any]] = None,
        _name: Optional[str] = None,
        _state: Optional[Dict[str, Any]] = None,
    ):
        self._stream = stream
        self.time_fmt = time_fmt
        self.tag_color_map = tag_color_map or {
            "TRACE": DIM,
            "DEBUG": YELLOW,
            "INFO": BLUE,
            "WARN": YELLOW,
            "ERROR": RED,
            "SUCCESS": GREEN,
        }
        self._context: Dict[str, Any] = dict(_context or {})
        if _name:
            self._context.setdefault("module", _name)
        # shared between a logger and every child bound from it
        self._state: Dict[str, Any] = _state if _state is not None else {
            "level_no": LEVELS.get(_env_level() or level, 20),
            "use_color": use_color,
            "show_time": show_time,
            "json_stream": None,
            "lock": threading.Lock(),
        }

    # Configuration
    @property
    def stream(self) -> TextIO:
        # resolved late so pytest's capsys replacement of sys.stderr is honoured
        return self._stream or sys.stderr

    @property
    def level_no(self) -> int:
        return self._state["level_no"]

    def set_level(self, level: str) -> None:
        self._state["level_no"] = LEVELS.get(level, self.level_no)

    def enable_color(self, on: bool = True) -> None:
        self._state["use_color"] = on

    def enable_json(self, file_path: str) -> None:
        with self._state["lock"]:
            old = self._state.get("json_stream")
            if old is not None:
                old.close()
            self._state["json_stream"] = open(file_path, "a", encoding="utf-8")

    def configure(self, *, level: Optional[str] = None, json_path: str = "", use_color: Optional[bool] = None) -> None:
        """Apply runtime settings; ORDIN_LOG_LEVEL wins over the configured level."""
        lvl = _env_level() or (level or "").strip().lower()
        if lvl in LEVELS:
            self.set_level(lvl)
        if use_color is not None:
            self.enable_color(use_color)
        if json_path:
            self.enable_json(json_path)

    # Context
    def bind(self, **ctx: Any) -> "Logger":
        new_ctx = dict(self._context); new_ctx.update(ctx)
        return Logger(
            stream=self._stream,
            time_fmt=self.time_fmt,
            tag_color_map=dict(self.tag_color_map),
            _context=new_ctx,
            _name=new_ctx.get("module"),
            _state=self._state,
        )

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    def is_enabled(self, severity: str) -> bool:
        return self.level_no <= LEVELS.get(severity, LEVELS["info"])

    # Formatting
    def _fmt_text(self, display_level: str, msg: str) -> str:
        # "[time] [module] LEVEL message key=value ..."
        use_color = self._state["use_color"]
        mod = str(self._context.get("module") or "").strip()
        col = self.tag_color_map.get(display_level) if use_color else None
        lvl_disp = f"{col}{display_level}{RESET}" if col else display_level
        head = f"[{mod}]" if mod else ""
        tail = " ".join(f"{k}={v}" for k, v in self._context.items() if k != "module")
        line = " ".join(p for p in (head, lvl_disp, msg, tail) if p)

        if self._state["show_time"]:
            ts = datetime.datetime.now().strftime(self.time_fmt)
            prefix = f"{DIM}[{ts}]{RESET}" if use_color else f"[{ts}]"
            return f"{prefix} {line}"
        return line

    def _write_sinks(self, display_level: str, text: str, *, msg: str, extra: Optional[Mapping[str, Any]]) -> None:
        with self._state["lock"]:
            self.stream.write(text + "\n")
            self.stream.flush()
            js = self._state.get("json_stream")
            if js:
                payload = {
                    "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds"),
                    "level": display_level,
                    "msg": msg,
                    "ctx": self._context or {},
                }
                if extra:
                    payload["extra"] = dict(extra)
                js.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
                js.flush()

    def _emit(self, severity: str, display_level: str, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        if not self.is_enabled(severity):
            return
        msg = " ".join(str(p) for p in parts)
        self._write_sinks(display_level, self._fmt_text(display_level, msg), msg=msg, extra=extra)

    # Public API
    def trace(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("trace", "TRACE", *parts, extra=extra)

    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("debug", "DEBUG", *parts, extra=extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "INFO", *parts, extra=extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("warn", "WARN", *parts, extra=extra)

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("error", "ERROR", *parts, extra=extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "SUCCESS", *parts, extra=extra)


# default instance
log = Logger()

__all__ = ["Logger", "log", "LEVELS", "VERBOSITY", "level_from_verbosity", "RESET", "DIM", "RED", "GREEN", "YELLOW", "BLUE"]
