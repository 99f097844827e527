"""
Structured JSON logger — append-only, one object per line (.jsonl).

Usage:
    from modules.observability.logger import StructuredLogger

    logger = StructuredLogger()
    logger.log("proj_abc123", "PERFORMANCE", {"component": "build_schedule"})

Logs are written to  <config.LOGS_DIR>/<session_id>.jsonl.  Nothing is
written while config.PERF_LOG_ENABLED is false.
"""

from __future__ import annotations

import json
import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path

import config

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _file_stem(session_id: str) -> str:
    """Session id as a bare file name inside the logs directory."""
    stem = _UNSAFE_CHARS.sub("_", session_id or "")
    if stem.strip(".") == "":
        return "default"
    return stem


class StructuredLogger:
    """Thread-safe, append-only JSONL logger."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        # None → resolve config.LOGS_DIR when the first file is opened
        self._logs_dir = Path(logs_dir) if logs_dir else None
        self._lock = threading.Lock()
        self._handles: dict[str, object] = {}  # session_id -> file handle

    # ── public API ────────────────────────────────────────────────────────

    def log(self, session_id: str, event_type: str, payload: dict) -> None:
        """Append one structured JSON record to ``<session_id>.jsonl``."""
        if not config.PERF_LOG_ENABLED:
            return
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "event_type": event_type,
            "payload": payload,
        }
        line = json.dumps(record, default=str, ensure_ascii=False) + "\n"

        with self._lock:
            fh = self._handles.get(session_id)
            if fh is None:
                fh = self._open(session_id)
            fh.write(line)  # type: ignore[union-attr]
            fh.flush()  # type: ignore[union-attr]

    def close(self, session_id: str | None = None) -> None:
        """Close one or all open file handles."""
        with self._lock:
            if session_id:
                fh = self._handles.pop(session_id, None)
                if fh:
                    fh.close()  # type: ignore[union-attr]
            else:
                for fh in self._handles.values():
                    fh.close()  # type: ignore[union-attr]
                self._handles.clear()

    # ── internals ─────────────────────────────────────────────────────────

    def _open(self, session_id: str):  # noqa: ANN202
        logs_dir = self._logs_dir or Path(config.LOGS_DIR)
        os.makedirs(logs_dir, exist_ok=True)
        path = logs_dir / f"{_file_stem(session_id)}.jsonl"
        fh = open(path, "a", encoding="utf-8")  # noqa: SIM115
        self._handles[session_id] = fh
        return fh
