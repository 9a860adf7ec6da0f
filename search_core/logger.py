"""
search_core/logger.py
---------------------
Two logging channels:

    - get_logger(name): stdlib loggers for warnings and failures
    - log_event / log_perf: append-only JSON-lines files under LOG_DIR
      (events.jsonl, perf.jsonl) for query tracing and latency

JSON logging is best effort; a failing write is reported on the stdlib
logger and never propagates into a query.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

LOG_DIR = Path(__file__).resolve().parents[1] / "logs"
EVENT_LOG_ENABLED = True

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", log_dir: str | Path | None = None,
                      event_log_enabled: bool = True):
    """Set the root level/format once and point the JSON logs at log_dir."""
    global LOG_DIR, EVENT_LOG_ENABLED
    root = logging.getLogger("winesearch")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    if log_dir is not None:
        LOG_DIR = Path(log_dir)
    EVENT_LOG_ENABLED = event_log_enabled


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"winesearch.{name}")


def _append(filename: str, entry: dict):
    if not EVENT_LOG_ENABLED:
        return
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with open(LOG_DIR / filename, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")
    except OSError as e:
        get_logger("logger").warning("Event logging failed: %s", e)


def log_event(event_type: str, payload: dict) -> dict:
    """Append an event to events.jsonl and return the entry."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "type": event_type,
        "payload": payload,
    }
    _append("events.jsonl", entry)
    return entry


def log_perf(component: str, latency_ms: float, **extra) -> dict:
    """Append a latency record to perf.jsonl."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "component": component,
        "latency_ms": round(latency_ms, 2),
        **extra,
    }
    _append("perf.jsonl", entry)
    return entry
