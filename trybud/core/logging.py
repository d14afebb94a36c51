"""
Structured logging for the quest engine.

All engine logs go through the ``trybud`` logger. Production emits one JSON
object per line; development gets a compact single-line format. The active
request id is carried in a context variable and stamped on every record, and
quest-level context (wallet, quest id, event type, error code) travels as
record attributes set by ``log_event``.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "trybud"

# Record attributes promoted to top-level keys in JSON output.
CONTEXT_FIELDS = ("user_id", "quest_id", "event_type", "error_code")

_LATENCY_BUCKETS = (
    (10, "<10ms"),
    (100, "10-100ms"),
    (500, "100-500ms"),
    (1000, "500-1000ms"),
)

_MAX_EXTRA_CHARS = 500

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label so request logs stay groupable."""
    if latency_ms is None:
        return "unknown"
    for upper, label in _LATENCY_BUCKETS:
        if latency_ms < upper:
            return label
    return ">=1000ms"


def _iso_utc(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class RequestIdFilter(logging.Filter):
    """Fill ``record.request_id`` from context when the caller did not pass one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _iso_utc(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tags = ["[trybud]"]
        rid = getattr(record, "request_id", None)
        if rid:
            tags.append(f"[rid={rid}]")
        quest_id = getattr(record, "quest_id", None)
        if quest_id is not None:
            tags.append(f"[quest={quest_id}]")
        line = f"{_iso_utc(record)} {record.levelname} {' '.join(tags)} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(env: str = "development", level: int = logging.INFO) -> logging.Logger:
    """Install a single stdout handler on the ``trybud`` logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # uvicorn has its own handlers; keep its access lines out of ours
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).propagate = False
    return logger


def _clip(value) -> str:
    text = value if isinstance(value, str) else repr(value)
    if len(text) <= _MAX_EXTRA_CHARS:
        return text
    return text[:_MAX_EXTRA_CHARS] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    quest_id: Optional[int] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
):
    """
    Emit one structured record on the ``trybud`` logger.

    Context fields are attached as record attributes; values in ``extra`` are
    stringified and clipped so a large ledger response cannot flood the log.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {
        "request_id": request_id or get_request_id(),
        "user_id": user_id,
        "quest_id": quest_id,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = value if isinstance(value, (int, float, bool)) else _clip(value)

    logger.log(getattr(logging, level.upper(), logging.INFO), msg, extra=fields)
