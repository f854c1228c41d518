"""Console and JSONL reporting for MVT runs.

A :class:`Reporter` is built once by the caller (normally the CLI) and handed
to each operation. Console lines are plain text; when ``events_path`` is set,
every message is also appended to a JSONL file as a structured record.
"""

from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Any, TextIO

from .io_utils import append_jsonl, utc_now_iso

LEVELS = ("debug", "info", "warn", "fatal")


class Reporter:
    def __init__(
        self,
        *,
        debug: bool = False,
        stream: TextIO | None = None,
        events_path: Path | None = None,
    ) -> None:
        self.show_debug = bool(debug)
        self.stream = stream if stream is not None else sys.stdout
        self.events_path = events_path

    @classmethod
    def silent(cls) -> "Reporter":
        return cls(stream=io.StringIO())

    def _emit(self, level: str, message: str, fields: dict[str, Any]) -> None:
        if level != "debug" or self.show_debug:
            prefix = {"fatal": "FATAL: ", "warn": "WARN: "}.get(level, "")
            text = f"{prefix}{message}"
            # undecodable file names arrive surrogate-escaped
            encoding = getattr(self.stream, "encoding", None)
            if encoding:
                text = text.encode(encoding, "backslashreplace").decode(encoding)
            print(text, file=self.stream, flush=True)
        if self.events_path is not None:
            record = {"timestamp_utc": utc_now_iso(), "level": level, "message": message}
            record.update(fields)
            append_jsonl(self.events_path, record)

    def debug(self, message: str, **fields: Any) -> None:
        self._emit("debug", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit("info", message, fields)

    def warn(self, message: str, **fields: Any) -> None:
        self._emit("warn", message, fields)

    def fatal(self, message: str, **fields: Any) -> None:
        self._emit("fatal", message, fields)

    def header(self, version: str) -> None:
        self.info(f"MVT version {version}")
        self.info("")
