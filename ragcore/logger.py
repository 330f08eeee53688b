"""
Name: Structured Logger Configuration

Responsibilities:
  - Emit one JSON object per log line on stdout
  - Merge the operation context (request_id, collection, operation)
  - Redact secrets and bound oversized values
  - Include stack traces for exceptions

Collaborators:
  - context.py: Operation-scoped context vars
  - config.py: log_level / log_json

Constraints:
  - Python logging module (stdlib) only
  - Never log secrets (API keys, passwords, connection URLs)

Notes:
  - Import as: from ragcore.logger import logger
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

# R: Attributes every LogRecord has; anything else came from `extra=`
_STANDARD_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "secret",
        "token",
        "authorization",
        "api_key",
        "apikey",
        "google_api_key",
        "database_url",
        "redis_url",
    }
)
REDACTED = "***REDACTED***"
MAX_STRING_CHARS = 4_000
MAX_DEPTH = 4


def sanitize(value: Any, key: str | None = None, depth: int = 0) -> Any:
    """R: Redact secret-looking keys, cut long strings, cap nesting."""
    if key is not None and key.lower() in SENSITIVE_KEYS:
        return REDACTED
    if depth > MAX_DEPTH:
        return "***TRUNCATED***"
    if isinstance(value, str):
        if len(value) > MAX_STRING_CHARS:
            return f"{value[:MAX_STRING_CHARS]}...(truncated)"
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, dict):
        return {str(k): sanitize(v, str(k), depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize(item, key, depth + 1) for item in value]
    return value


class JSONFormatter(logging.Formatter):
    """
    R: Render a record as JSON.

    Fields: timestamp (UTC ISO 8601), level, message, logger, module,
    function, line, context vars, `extra=` fields, exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        # R: Context imported lazily to avoid circular imports
        from .context import get_context_dict

        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **get_context_dict(),
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS:
                payload[key] = sanitize(value, key)

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "stacktrace": traceback.format_exception(exc_type, exc, tb),
            }

        return json.dumps(payload, default=str, ensure_ascii=False)


def setup_logger(name: str = "ragcore") -> logging.Logger:
    """
    R: Configure and return the structured logger.

    Reads log_level / log_json from Settings when they validate; otherwise
    falls back to INFO + JSON so that logging never blocks startup.
    """
    from pydantic import ValidationError

    log = logging.getLogger(name)

    level = "INFO"
    use_json = True
    try:
        from .config import get_settings

        settings = get_settings()
        level = (settings.log_level or "INFO").upper()
        use_json = settings.log_json
    except ValidationError as exc:
        sys.stderr.write(f"ragcore: invalid settings, logging with defaults: {exc}\n")

    log.setLevel(getattr(logging, level, logging.INFO))

    # R: Avoid duplicate handlers on reimport
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            JSONFormatter()
            if use_json
            else logging.Formatter("%(levelname)s %(name)s %(message)s")
        )
        log.addHandler(handler)

    return log


# R: Global logger instance
logger = setup_logger()
