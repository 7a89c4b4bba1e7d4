# user_registry/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # Domain error taxonomy (NotFoundError, UsernameConflictError, ...)
# │   ├── integrity_classifier.py    # SQL-level / driver-specific classification
# │   └── mapper.py                  # Map classified errors to the taxonomy + db_error_handler

from .base import (
    ErrorKind,
    DomainError,
    NotFoundError,
    ConflictError,
    UsernameConflictError,
    EmailConflictError,
    InvalidInputError,
    StorageError,
)

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
