# Ordin test scripts
from __future__ import annotations

import stat
import sys
from pathlib import Path
from typing import Callable

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    monkeypatch.delenv("ORDIN_CONFIG", raising=False)
    return tmp_path


@pytest.fixture()
def make_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an executable /bin/sh script into tmp_path/bin and return its path."""

    def _make(name: str, body: str) -> Path:
        bindir = tmp_path / "bin"
        bindir.mkdir(exist_ok=True)
        p = bindir / name
        p.write_text("#!/bin/sh\n" + body, encoding="utf-8")
        p.chmod(p.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return p

    return _make


@pytest.fixture()
def fake_runner(tmp_path: Path, make_script) -> tuple[Path, Path]:
    """
    ansible-playbook stand-in.

    Appends its argv to calls.txt, prints to both streams and exits 2 when the
    playbook file name contains "fail".
    """
    calls = tmp_path / "calls.txt"
    script = make_script(
        "ansible-playbook",
        f'printf \'%s\\n\' "$*" >> "{calls}"\n'
        'echo "PLAY [$5]"\n'
        'echo "warn from $5" >&2\n'
        'case "$(basename "$5")" in *fail*) echo "fatal: $5" >&2; exit 2;; esac\n'
        "exit 0\n",
    )
    return script, calls
