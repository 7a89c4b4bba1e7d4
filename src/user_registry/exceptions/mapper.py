import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .base import (
    DomainError,
    EmailConflictError,
    StorageError,
    UsernameConflictError,
)
from .integrity_classifier import ViolationType, classify_integrity_error, resolve_field

logger = logging.getLogger(__name__)

# Unique column -> taxonomy error. A unique constraint on any other column is
# not part of the taxonomy and degrades to StorageError.
UNIQUE_FIELD_ERRORS = {
    "username": UsernameConflictError,
    "email": EmailConflictError,
}


# -----------------------
# Mapper
# -----------------------

def to_domain_error(exc: IntegrityError, operation: str | None = None) -> DomainError:
    """
    Map a SQLAlchemy IntegrityError to a taxonomy error (returned, not raised).

    Unique violation on username -> UsernameConflictError
    Unique violation on email    -> EmailConflictError
    Anything else                -> StorageError
    """
    violation = classify_integrity_error(exc)

    if violation.violation is ViolationType.UNIQUE:
        field = resolve_field(violation, tuple(UNIQUE_FIELD_ERRORS))
        if field is not None:
            # INFO: conflicts are expected client-level outcomes (409)
            logger.info(
                "mapper.duplicate_detected",
                extra={"operation": operation, "field": field, "constraint": violation.constraint_name},
            )
            return UNIQUE_FIELD_ERRORS[field](constraint=violation.constraint_name)

        logger.warning(
            "mapper.unique_violation_unresolved",
            extra={
                "operation": operation,
                "constraint": violation.constraint_name,
                "columns": violation.columns,
            },
        )
        return StorageError("Database integrity error", constraint=violation.constraint_name)

    logger.warning(
        "mapper.unmapped_integrity_error",
        extra={
            "operation": operation,
            "violation": violation.violation.value,
            "constraint": violation.constraint_name,
        },
    )
    # raw DB text stays at DEBUG
    logger.debug("mapper.unmapped_integrity_raw", extra={"operation": operation, "raw": str(exc.orig)})
    return StorageError("Database integrity error", constraint=violation.constraint_name)


# -----------------------
# Async context manager to DRY error handling in repositories
# -----------------------
@asynccontextmanager
async def db_error_handler(db: AsyncSession, operation: str | None = None):
    """
    Usage:
        async with db_error_handler(self.db, "user.update"):
            ... DB ops that may raise ...

    - DomainError raised inside the block passes through untouched.
    - IntegrityError -> rollback, then the classified taxonomy error.
    - Any other exception -> rollback, then StorageError.
    The original exception is always chained as `__cause__`.
    """
    try:
        yield
    except DomainError:
        raise
    except IntegrityError as exc:
        await _safe_rollback(db, operation)
        raise to_domain_error(exc, operation) from exc
    except Exception as exc:
        await _safe_rollback(db, operation)
        logger.exception("mapper.unexpected_db_error", extra={"operation": operation})
        raise StorageError() from exc


async def _safe_rollback(db: AsyncSession, operation: str | None) -> None:
    try:
        await db.rollback()
    except Exception:
        logger.exception("mapper.rollback_failed", extra={"operation": operation})
