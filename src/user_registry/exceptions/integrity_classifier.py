r"""
# =================================================================================================================
# Constraint classification for storage write errors
# =================================================================================================================

This module answers one question about a raw `IntegrityError` coming out of SQLAlchemy:
"what kind of constraint failed, and on which column?"

It is used only by `exceptions/mapper.py`, which turns the answer into a taxonomy error
(`UsernameConflictError`, `EmailConflictError`, `StorageError`). Nothing here is raised to callers.

Classification order:
    1. Structured driver code (`pgcode` / `sqlstate` for Postgres drivers, `sqlite_errorname` for SQLite).
    2. Message keywords when no code is exposed.

Column resolution order:
    1. Constraint name from driver diagnostics (`diag.constraint_name`, `constraint_name`).
    2. Column list parsed from the message text (Postgres `Key (...)=`, SQLite `constraint failed: t.c`,
       MySQL `for key '...'`).

| Driver (via SQLAlchemy)   | code attribute                       | constraint name                      |
| ------------------------- | ------------------------------------ | ------------------------------------ |
| psycopg2                  | `orig.pgcode`                        | `orig.diag.constraint_name`          |
| psycopg (3)               | `orig.sqlstate`                      | `orig.diag.constraint_name`          |
| asyncpg                   | `orig.pgcode` / `orig.__cause__.sqlstate` | `orig.__cause__.constraint_name` |
| sqlite3 / aiosqlite       | `orig.sqlite_errorname`              | (message only)                       |

This is a best-effort heuristic. It must never raise: anything it cannot read degrades to
`ViolationType.UNKNOWN` with no columns.
"""
import logging
import re
from enum import Enum
from typing import Any, Iterator, NamedTuple

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


# =================================================================================================================
# Violation types and driver code mapping
# =================================================================================================================

class ViolationType(str, Enum):
    UNIQUE = "unique"
    NOT_NULL = "not_null"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"
    UNKNOWN = "unknown"


# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"


PGCODE_VIOLATION_MAP = {
    PostgresErrorCodes.UNIQUE_VIOLATION.value: ViolationType.UNIQUE,
    PostgresErrorCodes.NOT_NULL_VIOLATION.value: ViolationType.NOT_NULL,
    PostgresErrorCodes.FOREIGN_KEY_VIOLATION.value: ViolationType.FOREIGN_KEY,
    PostgresErrorCodes.CHECK_VIOLATION.value: ViolationType.CHECK,
}

# Extended result code names exposed by sqlite3 (Python 3.11+)
SQLITE_ERRORNAME_VIOLATION_MAP = {
    "SQLITE_CONSTRAINT_UNIQUE": ViolationType.UNIQUE,
    "SQLITE_CONSTRAINT_PRIMARYKEY": ViolationType.UNIQUE,
    "SQLITE_CONSTRAINT_NOTNULL": ViolationType.NOT_NULL,
    "SQLITE_CONSTRAINT_FOREIGNKEY": ViolationType.FOREIGN_KEY,
    "SQLITE_CONSTRAINT_CHECK": ViolationType.CHECK,
}


class ConstraintViolation(NamedTuple):
    violation: ViolationType
    constraint_name: str | None = None
    columns: list[str] | None = None


# =================================================================================================================
# Driver introspection helpers
# =================================================================================================================

def _driver_errors(orig: Any) -> Iterator[Any]:
    """
    Yield the DBAPI error and the native driver error it wraps (if any).
    SQLAlchemy's asyncpg adapter keeps the asyncpg exception on `__cause__`.
    """
    if orig is None:
        return
    yield orig
    cause = getattr(orig, "__cause__", None)
    if cause is not None and cause is not orig:
        yield cause


def _first_attr(orig: Any, *names: str) -> Any:
    for err in _driver_errors(orig):
        for name in names:
            value = getattr(err, name, None)
            if value:
                return value
    return None


def _constraint_name(orig: Any) -> str | None:
    for err in _driver_errors(orig):
        diag = getattr(err, "diag", None)
        name = getattr(diag, "constraint_name", None) if diag is not None else None
        if name:
            return name
        name = getattr(err, "constraint_name", None)
        if name:
            return name
    return None


def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


# =================================================================================================================
# Column extraction from message text
# =================================================================================================================

def _extract_columns_postgres(msg: str) -> list[str] | None:
    """
    - 'null value in column "username" violates not-null constraint'
    - 'DETAIL:  Key (email)=(a@b.com) already exists.'
    """
    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r'key \((?P<cols>[^)]+)\)=', msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    return None


def _extract_columns_sqlite(msg: str) -> list[str] | None:
    # 'UNIQUE constraint failed: users.email' / 'NOT NULL constraint failed: users.email'
    m = re.search(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>[^\n]+)', msg, flags=re.IGNORECASE)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols").strip())]
    return None


def _extract_columns_mysql(msg: str) -> list[str] | None:
    # "Duplicate entry 'foo' for key 'users.uq_users_email'"
    m = re.search(r"for key '(?P<key>[^']+)'", msg, flags=re.IGNORECASE)
    if m:
        return [m.group("key").split('.')[-1]]
    return None


def extract_columns(msg: str) -> list[str] | None:
    """Best-effort extraction of column names from a driver message (Postgres, SQLite, MySQL)."""
    if not msg:
        return None
    for extractor in (_extract_columns_postgres, _extract_columns_sqlite, _extract_columns_mysql):
        cols = extractor(msg)
        if cols:
            return cols
    return None


# =================================================================================================================
# Classifiers
# =================================================================================================================

def _classify_from_code(orig: Any) -> ViolationType | None:
    code = _first_attr(orig, "pgcode", "sqlstate")
    if code:
        violation = PGCODE_VIOLATION_MAP.get(str(code))
        if violation is not None:
            logger.debug("integrity.classified_by_code", extra={"pgcode": str(code)})
            return violation
        logger.warning("integrity.unknown_code", extra={"pgcode": str(code)})
        return ViolationType.UNKNOWN

    errorname = _first_attr(orig, "sqlite_errorname")
    if errorname:
        return SQLITE_ERRORNAME_VIOLATION_MAP.get(str(errorname), ViolationType.UNKNOWN)

    return None


def _classify_from_message(msg: str) -> ViolationType:
    """Fallback for drivers that expose no structured code."""
    normalized = msg.lower()

    if _match_any(normalized, ["unique constraint", "unique failed", "unique violation", "duplicate"]):
        return ViolationType.UNIQUE

    if _match_any(normalized, ["not null constraint", "null value in column"]):
        return ViolationType.NOT_NULL

    if _match_any(normalized, ["foreign key constraint", "is not present in table"]):
        return ViolationType.FOREIGN_KEY

    if _match_any(normalized, ["check constraint", "check failed"]):
        return ViolationType.CHECK

    logger.warning("integrity.unknown_message", extra={"message_snippet": msg[:200]})
    return ViolationType.UNKNOWN


def classify_integrity_error(exc: IntegrityError) -> ConstraintViolation:
    """
    Heuristically classify a SQLAlchemy IntegrityError.

    Returns:
        ConstraintViolation(violation, constraint_name, columns). Unreadable errors come back
        as ViolationType.UNKNOWN rather than raising.
    """
    try:
        orig = exc.orig
        msg = str(orig) if orig is not None else str(exc)

        violation = _classify_from_code(orig)
        if violation is None:
            violation = _classify_from_message(msg)

        return ConstraintViolation(
            violation=violation,
            constraint_name=_constraint_name(orig),
            columns=extract_columns(msg),
        )
    except Exception:
        logger.exception("integrity.classification_failed")
        return ConstraintViolation(ViolationType.UNKNOWN)


def resolve_field(violation: ConstraintViolation, candidates: tuple[str, ...]) -> str | None:
    """
    Return the single candidate field the violation refers to, or None.

    The constraint name is checked first (naming convention `uq_users_<column>`), then the
    parsed columns. Ambiguous matches (more than one candidate) resolve to None.
    """
    sources: list[str] = []
    if violation.constraint_name:
        sources.append(violation.constraint_name.lower())
    if violation.columns:
        sources.extend(c.lower() for c in violation.columns)

    for source in sources:
        matches = [field for field in candidates if field in source]
        if len(matches) == 1:
            return matches[0]
    return None


__all__ = [
    "ViolationType",
    "PostgresErrorCodes",
    "ConstraintViolation",
    "classify_integrity_error",
    "extract_columns",
    "resolve_field",
]
