"""
Custom logging formatters for the registry.

This module provides two formatters used by the logging system:
  - JsonFormatter: emits one JSON object per record for log collectors. It
    always carries service, env, version and request_id, plus every `extra`
    field passed at the call site (`operation`, `user_id`, `duration_ms`, ...).
  - ColorFormatter: a human-friendly, ANSI-colored formatter for local
    development consoles. Extras are appended as `key=value` pairs so the
    structured fields stay visible in text mode too.

The builder (dictConfig) selects which formatter a handler uses from LOG_FORMAT.

Event names are dotted and stable (e.g. "repo.user.create.success"), so the
`message` field is what dashboards group on; details belong in extras.
"""

import json
import logging
from typing import Any
from logging import LogRecord
from user_registry.utils.logging import get_project_version

PROJECT_VERSION = get_project_version()

# Attributes every LogRecord has; anything else on the record came from `extra={...}`
# or from a filter (request_id).
RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def record_extras(record: LogRecord, exclude: set[str] | frozenset[str] = frozenset()) -> dict[str, Any]:
    """Return the `extra` fields attached to a record (private and reserved names skipped)."""
    return {
        k: v
        for k, v in record.__dict__.items()
        if k not in RESERVED_RECORD_ATTRS and k not in exclude and not k.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction:
      - env: environment name (e.g., "development" | "production"); optional.
      - service: logical service name to include in logs.
      - datefmt: optional date format passed to logging.Formatter (used by formatTime).

    Usage example (programmatic):
      formatter = JsonFormatter(env="production", service="user-registry")
      handler.setFormatter(formatter)

    The formatter never raises on odd extras: values that are not JSON-serializable
    are written as their `str()`.
    """

    def __init__(self, *, env: str | None = None, service: str = "user-registry", datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def format(self, record: LogRecord) -> str:
        """
        Format a LogRecord into a JSON string.

        Steps:
          1. Build the canonical set of fields for structured logs.
          2. Add exception and stack info if present.
          3. Merge extras (attributes attached via `extra={...}`), stringifying
             anything json can't encode.
        """
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "request_id": getattr(record, "request_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        for k, v in record_extras(record, exclude=set(log_record)).items():
            try:
                json.dumps(v)
                log_record[k] = v
            except (TypeError, ValueError):
                log_record[k] = str(v)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development-friendly colored formatter.

    Line shape:
        TIMESTAMP | LEVEL | LOGGER_NAME | REQUEST_ID | MESSAGE key=value ...

    Only the level name is colored. ANSI codes may not render in every console;
    never use this formatter for files that get ingested.
    """

    COLOR_CODES = {
        "DEBUG": "\033[36m",      # cyan
        "INFO": "\033[32m",       # green
        "WARNING": "\033[33m",    # yellow
        "ERROR": "\033[31m",      # red
        "CRITICAL": "\033[1;41m", # bold on red background
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        # reset right after the level so the color doesn't bleed into the rest of the line
        reset = self.COLOR_CODES["RESET"]

        timestamp = self.formatTime(record, self.datefmt)

        base = (
            f"{timestamp} | {color}{record.levelname:<8}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'request_id', '-'):<10} | "
            f"{record.getMessage()}"
        )

        extras = record_extras(record, exclude={"request_id"})
        if extras:
            base += " " + " ".join(f"{k}={v}" for k, v in extras.items())

        if record.exc_info:
            base = base + "\n" + self.formatException(record.exc_info)

        return base
