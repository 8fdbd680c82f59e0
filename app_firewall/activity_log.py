# app_firewall/activity_log.py

from __future__ import annotations

import csv
import json
import sys
from pathlib import Path
from typing import Any, Dict, List
import datetime as _dt

from .config import default_log_dir
from .models import LogEntry, Severity

LOG_DIR = Path(default_log_dir())
LOG_FILE = LOG_DIR / "firewall_sync.csv"

FIELDS = ["timestamp", "severity", "message", "extra"]


def _now_iso() -> str:
    """Return current UTC time as ISO string (seconds precision)."""
    return _dt.datetime.now(_dt.timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds")


def set_log_dir(path: Path | str) -> None:
    """Point the log at <path>/firewall_sync.csv (e.g. from config.log_dir)."""
    global LOG_DIR, LOG_FILE
    LOG_DIR = Path(path)
    LOG_FILE = LOG_DIR / "firewall_sync.csv"


def ensure_log_dir() -> Path:
    """Create the log directory if needed and return it."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR


def _echo(severity: Severity, message: str) -> None:
    """INFO goes to stdout, WARNING/ERROR to stderr."""
    stream = sys.stdout if severity == "INFO" else sys.stderr
    print(f"[{severity}] {message}", file=stream)


def log_event(severity: Severity, message: str, extra: Dict[str, Any] | None = None) -> None:
    """
    Append a row to the CSV log and echo it to the console.
    Columns: timestamp, severity, message, extra (JSON).
    """
    _echo(severity, message)

    row = {
        "timestamp": _now_iso(),
        "severity": severity,
        "message": message,
        "extra": json.dumps(extra or {}, default=str),
    }

    try:
        ensure_log_dir()
        new_file = not LOG_FILE.exists() or LOG_FILE.stat().st_size == 0
        with LOG_FILE.open("a", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=FIELDS)
            if new_file:
                writer.writeheader()
            writer.writerow(row)
    except Exception as exc:
        # Logging should never crash the run; just print a warning.
        print(f"[activity_log] Failed to write log entry: {exc}", file=sys.stderr)


def get_recent_events(limit: int = 100) -> List[LogEntry]:
    """
    Read up to 'limit' most recent entries from the log file.
    If the file doesn't exist yet, return an empty list.
    """
    if not LOG_FILE.exists():
        return []

    try:
        with LOG_FILE.open("r", encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
    except Exception as exc:
        print(f"[activity_log] Failed to read log file: {exc}", file=sys.stderr)
        return []

    events: List[LogEntry] = []
    for row in rows[-limit:] if limit > 0 else []:
        try:
            extra = json.loads(row.get("extra") or "{}")
        except json.JSONDecodeError:
            # Keep the row, drop the unreadable payload
            extra = {}
        events.append(
            LogEntry(
                timestamp=row.get("timestamp", ""),
                severity=row.get("severity", "INFO"),  # type: ignore[arg-type]
                message=row.get("message", ""),
                extra=extra,
            )
        )
    return events


if __name__ == "__main__":
    # Simple self-test
    log_event("INFO", "This is a test event", {"foo": "bar"})
    for e in get_recent_events(limit=5):
        print(e)
