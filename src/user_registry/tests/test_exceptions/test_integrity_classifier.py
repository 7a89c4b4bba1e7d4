from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from user_registry.exceptions.integrity_classifier import (
    ConstraintViolation,
    ViolationType,
    classify_integrity_error,
    extract_columns,
    resolve_field,
)


# =================================================================================================================
# Fake driver errors (shapes of the attributes real drivers expose)
# =================================================================================================================

class Psycopg2Error(Exception):
    """psycopg2: `pgcode` + `diag.constraint_name`."""

    def __init__(self, message: str, pgcode: str, constraint_name: str | None = None):
        super().__init__(message)
        self.pgcode = pgcode
        self.diag = SimpleNamespace(constraint_name=constraint_name)


class AsyncpgError(Exception):
    """asyncpg: `sqlstate` + `constraint_name`."""

    def __init__(self, message: str, sqlstate: str, constraint_name: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.constraint_name = constraint_name


class AdaptedAsyncpgError(Exception):
    """SQLAlchemy's asyncpg adapter error: `pgcode`, native error on `__cause__`."""

    def __init__(self, cause: AsyncpgError):
        super().__init__(str(cause))
        self.pgcode = cause.sqlstate
        self.__cause__ = cause


class SqliteError(Exception):
    def __init__(self, message: str, errorname: str):
        super().__init__(message)
        self.sqlite_errorname = errorname


class UnprintableError(Exception):
    def __str__(self) -> str:
        raise RuntimeError("cannot render")


def integrity_error(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, orig)


@pytest.mark.asyncio
class TestClassifyByCode:
    """
    Structured codes are preferred over message text.
    """

    async def test_psycopg2_unique_violation_with_constraint_name(self):
        """
        Behavior:
          - pgcode 23505 with diag.constraint_name is a UNIQUE violation on that constraint.
        Importance:
          - Server databases report the constraint name; it is the most reliable column hint.
        """
        exc = integrity_error(Psycopg2Error("duplicate key", "23505", "uq_users_email"))

        result = classify_integrity_error(exc)

        assert result.violation is ViolationType.UNIQUE
        assert result.constraint_name == "uq_users_email"

    async def test_asyncpg_error_is_read_through_cause(self):
        native = AsyncpgError(
            'duplicate key value violates unique constraint "uq_users_username"',
            "23505",
            "uq_users_username",
        )
        exc = integrity_error(AdaptedAsyncpgError(native))

        result = classify_integrity_error(exc)

        assert result.violation is ViolationType.UNIQUE
        assert result.constraint_name == "uq_users_username"
        assert resolve_field(result, ("username", "email")) == "username"

    @pytest.mark.parametrize(
        "code, expected",
        [
            ("23502", ViolationType.NOT_NULL),
            ("23503", ViolationType.FOREIGN_KEY),
            ("23514", ViolationType.CHECK),
            ("99999", ViolationType.UNKNOWN),
        ],
    )
    async def test_other_sqlstates(self, code, expected):
        exc = integrity_error(Psycopg2Error("constraint failed", code))

        assert classify_integrity_error(exc).violation is expected

    async def test_sqlite_extended_error_name(self):
        exc = integrity_error(SqliteError("UNIQUE constraint failed: users.email", "SQLITE_CONSTRAINT_UNIQUE"))

        result = classify_integrity_error(exc)

        assert result.violation is ViolationType.UNIQUE
        assert result.constraint_name is None
        assert result.columns == ["email"]


@pytest.mark.asyncio
class TestClassifyByMessage:
    """
    Without any code attribute, message keywords decide.
    """

    async def test_postgres_detail_text(self):
        exc = integrity_error(Exception(
            'duplicate key value violates unique constraint "uq_users_email"\n'
            "DETAIL:  Key (email)=(bob@example.com) already exists."
        ))

        result = classify_integrity_error(exc)

        assert result.violation is ViolationType.UNIQUE
        assert result.columns == ["email"]

    async def test_not_null_text(self):
        exc = integrity_error(Exception('null value in column "username" violates not-null constraint'))

        result = classify_integrity_error(exc)

        assert result.violation is ViolationType.NOT_NULL
        assert result.columns == ["username"]

    async def test_unrecognized_text_is_unknown(self):
        exc = integrity_error(Exception("something odd happened"))

        assert classify_integrity_error(exc).violation is ViolationType.UNKNOWN

    async def test_classifier_never_raises(self):
        """
        Behavior:
          - An error whose text can't even be rendered classifies as UNKNOWN.
        Importance:
          - The worst case of classification must be a StorageError upstream, never a crash.
        """
        exc = integrity_error(UnprintableError())

        result = classify_integrity_error(exc)

        assert result == ConstraintViolation(ViolationType.UNKNOWN)


class TestExtractColumns:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("DETAIL:  Key (username)=(alice) already exists.", ["username"]),
            ("UNIQUE constraint failed: users.username", ["username"]),
            ("UNIQUE constraint failed: users.username, users.email", ["username", "email"]),
            ("Duplicate entry 'bob@example.com' for key 'users.uq_users_email'", ["uq_users_email"]),
            ("no columns here", None),
            ("", None),
        ],
    )
    def test_extract_columns(self, message, expected):
        assert extract_columns(message) == expected


class TestResolveField:
    def test_constraint_name_wins_over_columns(self):
        violation = ConstraintViolation(ViolationType.UNIQUE, "uq_users_email", ["username"])

        assert resolve_field(violation, ("username", "email")) == "email"

    def test_falls_back_to_columns(self):
        violation = ConstraintViolation(ViolationType.UNIQUE, None, ["username"])

        assert resolve_field(violation, ("username", "email")) == "username"

    def test_ambiguous_or_missing_is_none(self):
        ambiguous = ConstraintViolation(ViolationType.UNIQUE, "uq_users_username_email")
        nothing = ConstraintViolation(ViolationType.UNIQUE)

        assert resolve_field(ambiguous, ("username", "email")) is None
        assert resolve_field(nothing, ("username", "email")) is None
