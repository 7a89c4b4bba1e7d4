"""
Handler factories for logging.dictConfig.

Each helper returns a handler configuration dictionary (not a handler instance);
`builder.make_dict_config` decides which of them are active. Every handler runs the
"request_id" and "redact" filters, which `make_dict_config` declares.

| Factory                      | Class                 | Level         | Destination            |
| ---------------------------- | --------------------- | ------------- | ---------------------- |
| get_console_handler          | StreamHandler         | LOG_LEVEL     | stdout                 |
| get_file_handler             | RotatingFileHandler   | LOG_LEVEL     | <LOG_DIR>/app.log      |
| get_error_file_handler       | RotatingFileHandler   | ERROR         | <LOG_DIR>/errors.log   |
| get_error_console_handler    | StreamHandler         | ERROR         | stderr                 |
"""

from user_registry.config.settings import Settings
from pathlib import Path

FILTERS = ["request_id", "redact"]


def _formatter_name(settings: Settings) -> str:
    # The builder's "formatters" mapping must contain "json" and "standard".
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    """
    Return a logging handler configuration dict for the console.

    Args:
        settings: the application Settings (LOG_FORMAT picks the formatter, LOG_LEVEL the level).
    """
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": list(FILTERS),
        # containers collect stdout
        "stream": "ext://sys.stdout",
    }


def get_file_handler(settings: Settings) -> dict:
    file_path = str(Path(settings.LOG_DIR) / "app.log")
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": file_path,
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(FILTERS),
    }


# Error-specific rotating file to separate errors (useful for alerting/archival).
def get_error_file_handler(settings: Settings) -> dict:
    error_file_path = str(Path(settings.LOG_DIR) / "errors.log")
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",  # keep error files structured for easier ingestion
        "level": "ERROR",
        "filename": error_file_path,
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(FILTERS),
    }


def get_error_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": "json",
        "level": "ERROR",
        "filters": list(FILTERS),
        "stream": "ext://sys.stderr",
    }
