"""Structured logging.

Protocol traffic owns stdout, so log records go to stderr and, optionally,
to a dated JSON-lines file.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any

from notify_relay import defaults

# Extra record attributes copied into the JSON line when present.
_EXTRA_KEYS = ("channel", "method", "request_id", "status", "channels", "duration_ms")


class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_dict["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                log_dict[key] = val
        return json.dumps(log_dict, default=str)


def log_file_path(log_dir: str | Path, today: date | None = None) -> Path:
    today = today or date.today()
    return Path(log_dir) / f"{defaults.LOG_FILE_PREFIX}-{today.isoformat()}.log"


def setup_logging(level: str = "INFO", log_dir: str | Path | None = None) -> None:
    """Configure the root logger with JSON output on stderr (and a file)."""
    formatter = JsonFormatter()
    root = logging.getLogger()
    root.handlers.clear()

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if log_dir:
        path = log_file_path(log_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
