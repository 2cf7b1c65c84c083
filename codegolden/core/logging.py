"""
Structured logging for the CodeGoldenAI backend.

- JSON lines in production, single-line human output elsewhere.
- Every record carries the request_id of the request that produced it.
- log_event() is how the plan ledger emits domain events
  (plan.expired, plan.upgrade_approved, ...).
"""

import json
import logging
import os
import sys
from bisect import bisect_right
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "codegolden"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Record attributes promoted to top-level JSON keys
STRUCTURED_FIELDS = ("identity", "event_type", "error_code", "status", "method", "path", "latency_bucket")

_LATENCY_EDGES = (10, 100, 500, 1000)
_LATENCY_LABELS = ("<10ms", "10-100ms", "100-500ms", "500-1000ms", ">=1000ms")

MAX_FIELD_LENGTH = 500


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label so log volume stays groupable."""
    if latency_ms is None:
        return "unknown"
    return _LATENCY_LABELS[bisect_right(_LATENCY_EDGES, latency_ms)]


def _utc_timestamp(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, timezone.utc)
    return stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z"


def _structured(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        name: getattr(record, name)
        for name in STRUCTURED_FIELDS
        if getattr(record, name, None) is not None
    }


class RequestIdFilter(logging.Filter):
    """Fill record.request_id from the request context when the caller did not pass one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(_structured(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tags = []
        rid = getattr(record, "request_id", None)
        if rid:
            tags.append(f"[rid={rid}]")
        identity = getattr(record, "identity", None)
        if identity:
            tags.append(f"[identity={identity}]")
        prefix = " ".join([_utc_timestamp(record), f"{record.levelname:<7}", f"[{record.name}]"] + tags)
        text = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def configure_logging(env: str = "development", level: int = logging.INFO) -> logging.Logger:
    """Install a single stdout handler on the codegolden logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger.handlers = [handler]
    logger.propagate = True
    return logger


def _clip(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    text = value if isinstance(value, str) else repr(value)
    if len(text) > MAX_FIELD_LENGTH:
        return text[:MAX_FIELD_LENGTH] + "...<truncated>"
    return text


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    identity: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
):
    """
    Emit a domain event on the codegolden logger.

    Values in `extra` become record attributes; long values are clipped so a
    stray prompt or token payload cannot flood the log.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, Any] = {
        "request_id": request_id or get_request_id(),
        "identity": identity,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = _clip(value)

    logger.log(logging.getLevelName(level.upper()), msg, extra=fields)
