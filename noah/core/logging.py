"""Structured logging configuration for Noah."""

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional, Set, Tuple

# Request-scoped data (request id, path, session id)
request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

# Keys whose values never reach the log output in clear text
SENSITIVE_KEYS: Set[str] = {
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "api_key",
    "anthropic_api_key",
    "openai_api_key",
    "perplexity_api_key",
}

_COOKIE_VALUE = re.compile(r"=[^;]*")
# Provider key shapes: sk-..., pplx-..., sk-ant-...
_API_KEY_PATTERN = re.compile(r"\b(sk-ant-|sk-|pplx-)[A-Za-z0-9_-]{8,}")


def _mask(value: Any) -> str:
    """Mask a secret, keeping a short prefix/suffix for long values."""
    if not isinstance(value, str):
        return "[REDACTED]"
    if len(value) < 12:
        return "<REDACTED>"
    return f"{value[:3]}***{value[-3:]}"


def redact_sensitive_data(data: Any) -> Any:
    """Recursively redact secrets from dicts, lists and strings.

    - values under sensitive keys are masked
    - cookie headers keep their names but lose their values
    - provider API keys embedded in free text are masked
    """
    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if "cookie" in key_lower:
                if isinstance(value, str):
                    redacted[key] = _COOKIE_VALUE.sub("=<REDACTED>", value)
                else:
                    redacted[key] = "[REDACTED]"
            elif key_lower in SENSITIVE_KEYS:
                redacted[key] = _mask(value)
            else:
                redacted[key] = redact_sensitive_data(value)
        return redacted
    if isinstance(data, list):
        return [redact_sensitive_data(item) for item in data]
    if isinstance(data, str):
        return _API_KEY_PATTERN.sub(lambda m: f"{m.group(1)}<REDACTED>", data)
    return data


def _context_fields() -> Dict[str, Any]:
    """Request id, path and session id of the request being handled, if any."""
    ctx = request_context.get()
    if not ctx:
        return {}
    fields = {"request_id": ctx.get("request_id"), "path": ctx.get("path")}
    if ctx.get("session_id"):
        fields["session_id"] = ctx["session_id"]
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, secrets redacted."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_sensitive_data(record.getMessage()),
            **_context_fields(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = redact_sensitive_data(data)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line coloured output for local development."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }

    def format(self, record: logging.LogRecord) -> str:
        ctx = _context_fields()
        trace = (ctx.get("request_id") or "-")[:8]
        if ctx.get("session_id"):
            trace = f"{trace}/{ctx['session_id'][-6:]}"

        color = self.LEVEL_COLORS.get(record.levelno, "")
        parts = [
            datetime.now().strftime("%H:%M:%S"),
            f"{color}{record.levelname:<7}\033[0m",
            trace,
            record.name,
            redact_sensitive_data(record.getMessage()),
        ]
        data = getattr(record, "data", None)
        if data:
            parts.append(json.dumps(redact_sensitive_data(data), default=str))

        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter accepting a ``data=`` keyword for structured fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        data = kwargs.pop("data", None)
        if data is not None:
            kwargs.setdefault("extra", {})["data"] = data
        return msg, kwargs


@lru_cache(maxsize=None)
def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {})


def bind_session(session_id: Optional[str]) -> None:
    """Attach the analytics session id to the current request context."""
    ctx = request_context.get()
    if ctx and session_id:
        ctx["session_id"] = session_id


QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "mcp")


def setup_logging(level: str = "INFO", json_output: bool = False, log_file: Optional[str] = None) -> None:
    """Install root handlers: stdout in JSON or console form, plus an optional JSON file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setFormatter(StructuredFormatter() if json_output else ConsoleFormatter())
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
