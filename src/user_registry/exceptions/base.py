"""
Domain error taxonomy for the user registry.

Every layer above the repository communicates failures through these classes
instead of raw SQLAlchemy / driver exceptions. The set is closed: each error
carries one `ErrorKind` and callers branch on the class (or the kind), never on
message text.

- message: human-friendly message (safe to show to clients)
- fields: optional list of field names related to the error (e.g., ['email'])
- constraint: optional DB constraint name (for logs only, never sent to clients)
- kind: the taxonomy member, also used as the canonical `code` in payloads

The underlying storage error (if any) is kept on `__cause__` via `raise ... from exc`
so it stays available for logging without being part of the public payload.
"""

from enum import Enum
from typing import Iterable


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    USERNAME_CONFLICT = "username_conflict"
    EMAIL_CONFLICT = "email_conflict"
    INVALID_INPUT = "invalid_input"
    STORAGE_FAILURE = "storage_failure"


class DomainError(Exception):
    """
    Base class of the taxonomy.

    Subclasses pin `kind`; `DomainError` itself is never raised directly.
    """

    kind: ErrorKind = ErrorKind.STORAGE_FAILURE

    # Map taxonomy kind -> HTTP status used by the API layer.
    KIND_TO_STATUS = {
        ErrorKind.NOT_FOUND: 404,
        ErrorKind.USERNAME_CONFLICT: 409,
        ErrorKind.EMAIL_CONFLICT: 409,
        ErrorKind.INVALID_INPUT: 400,
        ErrorKind.STORAGE_FAILURE: 500,
    }

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        parts.append(f"code: {self.kind.value}")
        return f"{base} ({'; '.join(parts)})"

    # ------------------------
    # Structured payload for API responses
    # ------------------------
    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict suitable for HTTP responses.
        Standard shape:
            {
                "detail": "A human-friendly message",
                "code": "email_conflict",
                "fields": ["email"],           # optional
            }
        `constraint` and the chained cause are intentionally left out.
        """
        payload = {"detail": self.message, "code": self.kind.value}
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload

    def http_status(self) -> int:
        return self.KIND_TO_STATUS.get(self.kind, 500)


class NotFoundError(DomainError):
    """The targeted user does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "User not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields)


class ConflictError(DomainError):
    """Common parent of the two uniqueness conflicts."""

    field_name: str = ""

    def __init__(self, message: str | None = None, *, constraint: str | None = None):
        super().__init__(
            message or f"{self.field_name.capitalize()} already exists",
            fields=[self.field_name],
            constraint=constraint,
        )


class UsernameConflictError(ConflictError):
    kind = ErrorKind.USERNAME_CONFLICT
    field_name = "username"


class EmailConflictError(ConflictError):
    kind = ErrorKind.EMAIL_CONFLICT
    field_name = "email"


class InvalidInputError(DomainError):
    """A business rule was violated before storage was touched."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields)


class StorageError(DomainError):
    """Any persistence failure that could not be classified more precisely."""

    kind = ErrorKind.STORAGE_FAILURE

    def __init__(self, message: str = "Database operation failed", *, constraint: str | None = None):
        super().__init__(message, constraint=constraint)


__all__ = [
    "ErrorKind",
    "DomainError",
    "NotFoundError",
    "ConflictError",
    "UsernameConflictError",
    "EmailConflictError",
    "InvalidInputError",
    "StorageError",
]
