"""
Logging builder: create and apply the dictConfig logging configuration for the registry.

This module:
 - builds a dictConfig-compatible mapping from Settings (`make_dict_config`)
 - applies it once at startup (`setup_logging`), creating the log directory first
   when file logging is enabled

Settings used:
 - LOG_LEVEL, LOG_FORMAT, LOG_TO_STDOUT, LOG_DIR, LOG_MAX_BYTES, LOG_BACKUP_COUNT
 - ENABLE_SQL_LOGGING (sqlalchemy.engine at DEBUG instead of WARNING)
 - ENV (stamped on every JSON record)
"""

from __future__ import annotations

from pathlib import Path
import logging
import logging.config
from user_registry.utils.logging import get_project_name

# Handler/formatter/filter classes used in dictConfig must be importable here.
from .formatters import JsonFormatter, ColorFormatter
from .filters import RequestIdFilter, RedactFilter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
    get_error_console_handler,
)

# Settings type (avoid calling get_settings() here to prevent import-time side effects)
from user_registry.config.settings import Settings

DEFAULT_SERVICE_NAME = "user-registry"


def file_logging_enabled(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


# -----------------------
# dictConfig builder
# -----------------------
def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping using the provided settings.

    The returned mapping includes:
      - formatters: "standard" (color/dev or plain) and "json"
      - filters: "request_id", "redact"
      - handlers: console, (file/error_file) OR error_console depending on LOG_TO_STDOUT
      - loggers: root, uvicorn.error, uvicorn.access, sqlalchemy.engine
    """
    formatters = {
        "standard": {
            # use ColorFormatter only in text development mode
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(default=DEFAULT_SERVICE_NAME),
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if file_logging_enabled(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            "uvicorn.error": {
                "level": settings.LOG_LEVEL,
                "handlers": list(handlers.keys()),
                "propagate": False,
            },
            # RequestIDMiddleware writes the access log; uvicorn's own line is kept quiet
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            # Be cautious with SQL logging (statements may contain personal data)
            "sqlalchemy.engine": {
                "level": "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    return config


# --------------------------
# Entrypoint
# --------------------------
def setup_logging(settings: Settings) -> None:
    """
    Initialize logging using settings.

    Steps:
      1. Ensure LOG_DIR exists when writing files.
      2. Apply dictConfig(make_dict_config(settings)) so handlers/formatters/filters exist.
      3. Register a RequestIdFilter on the root logger so records logged directly on the
         root still carry `request_id`.

    Calling it again (tests, reloads) replaces the previous configuration.
    """
    if file_logging_enabled(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))

    logging.getLogger().addFilter(RequestIdFilter())


"""
-------------------------------------------------
Which handlers are active?
-------------------------------------------------
| `LOG_TO_STDOUT` | `LOG_DIR` Set  | Active Handlers                       |
| --------------- | -------------- | ------------------------------------- |
| `true`          | doesn't matter | `console` + `error_console`           |
| `false`         | not set        | `console` + `error_console`           |
| `false`         | set            | `console` + `file` + `error_file`     |

| Handler         | Triggers On             | Output                  |
| --------------- | ----------------------- | ----------------------- |
| `console`       | All logs `>= LOG_LEVEL` | stdout                  |
| `file`          | All logs `>= LOG_LEVEL` | `<LOG_DIR>/app.log`     |
| `error_file`    | Only logs `>= ERROR`    | `<LOG_DIR>/errors.log`  |
| `error_console` | Only logs `>= ERROR`    | stderr (JSON)           |

Usage:
```
from user_registry.config.settings import get_settings
from user_registry.core.logging import setup_logging

setup_logging(get_settings())
logging.getLogger(__name__).info("repo.user.create.success", extra={"id": "..."})
```
"""
