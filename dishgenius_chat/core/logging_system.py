"""Per-request logging with in-memory capture.

The SessionLogger uses contextvars to track the request id of the current
chat turn, so every record emitted while handling a turn is stamped with it
and buffered under that id. Buffers are bounded and cleaned up explicitly
by the request handler once the turn finishes.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
import traceback
from collections import deque
from contextvars import ContextVar
from typing import Any, Dict, Optional

from .timing_logger import timed

LOGGER = logging.getLogger(__name__)


class SessionLogger:
    """Per-request logger that writes console lines and keeps a structured buffer.

    Attributes:
        request_id: ContextVar storing the per-turn buffer key.
        log_level:  ContextVar storing the minimum console level for this turn.
        logs:       Map of request_id -> fixed-size deque of structured log events.
    """

    request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
    log_level: ContextVar[int] = ContextVar("log_level", default=logging.INFO)
    max_lines: int = 2000
    logs: Dict[str, deque[dict[str, Any]]] = {}
    _last_seen: Dict[str, float] = {}
    _state_lock = threading.Lock()
    _console_formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d "
        "[req=%(request_id)s] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    @staticmethod
    def _classify_event_type(message: str) -> str:
        msg = (message or "").lstrip()
        if msg.startswith("Provider request headers:"):
            return "provider.request.headers"
        if msg.startswith("Provider request payload:"):
            return "provider.request.payload"
        if msg.startswith("Provider error"):
            return "provider.error"
        if msg.startswith("Tool "):
            return "chat.tools"
        return "chat"

    @classmethod
    def _build_event(cls, record: logging.LogRecord) -> dict[str, Any]:
        """Return a structured log event extracted from a LogRecord."""
        message = record.getMessage()
        event: dict[str, Any] = {
            "created": float(getattr(record, "created", time.time())),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None),
            "event_type": cls._classify_event_type(message),
            "module": record.module,
            "func": record.funcName,
            "lineno": record.lineno,
            "message": message,
        }
        if record.exc_info:
            event["exception"] = {"text": "".join(traceback.format_exception(*record.exc_info))}
        return event

    @classmethod
    @timed
    def get_logger(cls, name=__name__) -> logging.Logger:
        """Create a logger wired to the current SessionLogger context.

        The returned logger writes to stdout (honouring the per-turn level)
        and to the in-memory ``SessionLogger.logs`` buffer keyed by the
        current ``SessionLogger.request_id``. Records still propagate so
        pytest's ``caplog`` and host applications see them.
        """
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.filters.clear()
        logger.setLevel(logging.DEBUG)
        logger.propagate = True

        def _filter(record: logging.LogRecord) -> bool:
            rid = cls.request_id.get()
            record.request_id = rid or "-"
            record.session_log_level = cls.log_level.get()
            if rid:
                with cls._state_lock:
                    cls._last_seen[rid] = time.time()
            return True

        handler = logging.Handler()
        handler.addFilter(_filter)
        handler.emit = cls.process_record  # type: ignore[assignment]
        logger.addHandler(handler)
        return logger

    @classmethod
    def set_max_lines(cls, value: int) -> None:
        """Set the maximum in-memory lines retained per request."""
        cls.max_lines = max(100, min(200000, int(value)))

    @classmethod
    def process_record(cls, record: logging.LogRecord) -> None:
        session_log_level = getattr(record, "session_log_level", logging.INFO)
        if record.levelno >= int(session_log_level):
            try:
                sys.stdout.write(cls._console_formatter.format(record) + "\n")
                sys.stdout.flush()
            except (OSError, ValueError):
                pass
        request_id = getattr(record, "request_id", None)
        if not request_id or request_id == "-":
            return
        event = cls._build_event(record)
        with cls._state_lock:
            buffer = cls.logs.get(request_id)
            if buffer is None or buffer.maxlen != cls.max_lines:
                buffer = deque(buffer or (), maxlen=cls.max_lines)
                cls.logs[request_id] = buffer
            buffer.append(event)
            cls._last_seen[request_id] = time.time()

    @classmethod
    def events(cls, request_id: str) -> list[dict[str, Any]]:
        """Return a snapshot of the buffered events for ``request_id``."""
        with cls._state_lock:
            return list(cls.logs.get(request_id) or ())

    @classmethod
    def discard(cls, request_id: str) -> None:
        with cls._state_lock:
            cls.logs.pop(request_id, None)
            cls._last_seen.pop(request_id, None)

    @classmethod
    @timed
    def cleanup(cls, max_age_seconds: float = 3600) -> None:
        """Remove stale request logs to avoid unbounded growth."""
        cutoff = time.time() - max_age_seconds
        with cls._state_lock:
            stale = [rid for rid, ts in cls._last_seen.items() if ts < cutoff]
            for rid in stale:
                cls.logs.pop(rid, None)
                cls._last_seen.pop(rid, None)


def _resolve_level(value: str) -> int:
    level = logging.getLevelName(str(value or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO
