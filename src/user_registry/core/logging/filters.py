"""
Logging filters

Request ID filter, redaction filter and the contextvar helpers behind them.

- The request id lives in a `contextvars.ContextVar`, so it follows a request
  across awaits (FastAPI handlers, the service, the repository) without being
  passed around. `RequestIDMiddleware` sets it; `RequestIdFilter` copies it onto
  every LogRecord so formatters can always reference `%(request_id)s`.
- `RedactFilter` scrubs secrets and personal data from `extra` fields before any
  handler writes them. Email addresses keep their domain so support can still
  tell providers apart.

Both filters return True: they annotate records, never drop them.
"""

import logging
from logging import LogRecord
import contextvars

# contextvar for request id (used by RequestIdFilter and the HTTP middleware).
# Default is None to indicate "no request id set".
_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)

REDACTED = "***REDACTED***"


def set_request_id(request_id: str | None):
    """
    Set the request id in the current context and return the token to allow reset.

    Returns:
        token: contextvar.Token which can be passed to reset_request_id(token)
    """
    return _request_id_ctx.set(request_id)


def reset_request_id(token):
    """
    Reset the contextvar to the previously saved token returned by set_request_id().
    """
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    """
    Retrieve the current context's request id, or None outside a request.
    """
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Logging filter that guarantees every LogRecord has a `request_id` attribute.

    Precedence:
      1. `extra={"request_id": ...}` passed at the call site
      2. the contextvar value set by the middleware
      3. the sentinel "-"
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


def mask_email(value: str) -> str:
    """
    "alice@example.com" -> "a***@example.com". Values without "@" are fully redacted.
    """
    local, sep, domain = value.partition("@")
    if not sep or not local:
        return REDACTED
    return f"{local[0]}***@{domain}"


# Redact sensitive information
class RedactFilter(logging.Filter):
    SENSITIVE = {"password", "secret", "token", "access_token", "refresh_token", "authorization", "api_key"}
    PARTIAL = {"email": mask_email}

    def filter(self, record: LogRecord) -> bool:
        # mask attributes on record that match SENSITIVE / PARTIAL
        for key in list(record.__dict__.keys()):
            lowered = key.lower()
            if lowered in self.SENSITIVE:
                record.__dict__[key] = REDACTED
            elif lowered in self.PARTIAL:
                value = record.__dict__[key]
                record.__dict__[key] = self.PARTIAL[lowered](value) if isinstance(value, str) else REDACTED
        return True
