from __future__ import annotations

import logging
import threading
import traceback
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Tuple

_BUFFER_MAX = 2000
_buffer: Deque[Dict[str, object]] = deque(maxlen=_BUFFER_MAX)
_lock = threading.Lock()
_next_id = 1
_installed = False

# Loggers whose INFO lines (regenerations, cache invalidations) should be kept.
_PIPELINE_LOGGERS = (
    "image_variants.services.image_delivery",
    "image_variants.services.renderer",
    "image_variants.core.storage",
    "image_variants.api.images",
)


class _LogBufferHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        if record.name == "uvicorn.access":
            return
        global _next_id
        try:
            message = record.getMessage()
            if record.exc_info:
                message = f"{message}\n{''.join(traceback.format_exception(*record.exc_info))}".rstrip()

            ts = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
            with _lock:
                _buffer.append({
                    "id": _next_id,
                    "ts": ts,
                    "level": record.levelname,
                    "logger": record.name,
                    "message": message,
                    "line": f"{ts} {record.levelname} {record.name}: {message}",
                })
                _next_id += 1
        except Exception:
            self.handleError(record)


def install_log_buffer(level: int = logging.INFO) -> None:
    """Attach the in-memory handler to the root logger once."""
    global _installed
    if _installed:
        return
    handler = _LogBufferHandler()
    handler.setLevel(level)
    root_logger = logging.getLogger()
    if handler not in root_logger.handlers:
        root_logger.addHandler(handler)
    for name in _PIPELINE_LOGGERS:
        logger = logging.getLogger(name)
        if logger.level in (logging.NOTSET, logging.WARNING, logging.ERROR, logging.CRITICAL):
            logger.setLevel(level)
    _installed = True


def get_log_entries(since_id: int | None, limit: int) -> Tuple[List[Dict[str, object]], int | None]:
    with _lock:
        items = list(_buffer)
        newest = int(_buffer[-1]["id"]) if _buffer else None
    if since_id is not None:
        items = [entry for entry in items if int(entry["id"]) > since_id]
    if limit and len(items) > limit:
        items = items[-limit:]
    last_id = int(items[-1]["id"]) if items else newest
    return items, last_id


def clear_log_entries() -> None:
    global _next_id
    with _lock:
        _buffer.clear()
        _next_id = 1
