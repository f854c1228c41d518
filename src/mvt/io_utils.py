"""Timestamps, run identity, and JSON artifact writers."""

from __future__ import annotations

import getpass
import json
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from . import __version__


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().replace(microsecond=0).isoformat()


def manifest_timestamp(ts: datetime | None = None) -> str:
    """Fixed-width UTC stamp, ``yyyyMMddHHmmss.ffff``."""
    ts = (ts or utc_now()).astimezone(timezone.utc)
    return f"{ts:%Y%m%d%H%M%S}.{ts.microsecond // 100:04d}"


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=False) + "\n", encoding="utf-8")


def append_jsonl(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(payload, sort_keys=False) + "\n")


def current_username() -> str:
    try:
        return getpass.getuser()
    except Exception:
        return os.environ.get("USERNAME") or "unknown"


@dataclass(frozen=True)
class RunIdentity:
    tool_version: str
    command: str
    username: str


def capture_identity(argv: list[str] | None = None) -> RunIdentity:
    return RunIdentity(
        tool_version=__version__,
        command=" ".join(sys.argv if argv is None else argv),
        username=current_username(),
    )
