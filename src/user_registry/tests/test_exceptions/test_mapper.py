from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from user_registry.exceptions.base import (
    EmailConflictError,
    ErrorKind,
    NotFoundError,
    StorageError,
    UsernameConflictError,
)
from user_registry.exceptions.mapper import db_error_handler, to_domain_error


class DriverError(Exception):
    def __init__(self, message: str, pgcode: str | None = None, constraint_name: str | None = None):
        super().__init__(message)
        self.pgcode = pgcode
        self.diag = SimpleNamespace(constraint_name=constraint_name)


class FakeSession:
    """Stands in for AsyncSession; only rollback() is used by the handler."""

    def __init__(self, fail_rollback: bool = False):
        self.rollbacks = 0
        self.fail_rollback = fail_rollback

    async def rollback(self):
        self.rollbacks += 1
        if self.fail_rollback:
            raise RuntimeError("connection gone")


def unique_violation(constraint: str) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, DriverError("duplicate key", "23505", constraint))


class TestToDomainError:
    def test_username_constraint_maps_to_username_conflict(self):
        error = to_domain_error(unique_violation("uq_users_username"), "user.create")

        assert isinstance(error, UsernameConflictError)
        assert error.fields == ["username"]
        assert error.constraint == "uq_users_username"
        assert error.http_status() == 409

    def test_email_constraint_maps_to_email_conflict(self):
        error = to_domain_error(unique_violation("uq_users_email"))

        assert isinstance(error, EmailConflictError)
        assert error.to_payload() == {
            "detail": "Email already exists",
            "code": "email_conflict",
            "fields": ["email"],
        }

    def test_unique_violation_on_unknown_column_is_storage_error(self):
        error = to_domain_error(unique_violation("uq_users_nickname"))

        assert isinstance(error, StorageError)
        assert error.kind is ErrorKind.STORAGE_FAILURE

    def test_non_unique_violation_is_storage_error(self):
        exc = IntegrityError("INSERT ...", {}, DriverError("null value", "23502"))

        assert isinstance(to_domain_error(exc), StorageError)

    def test_payload_never_leaks_constraint_or_driver_text(self):
        error = to_domain_error(unique_violation("uq_users_email"))

        payload = error.to_payload()

        assert "uq_users_email" not in str(payload)
        assert "duplicate key" not in str(payload)


@pytest.mark.asyncio
class TestDbErrorHandler:
    async def test_integrity_error_becomes_classified_conflict(self):
        """
        Behavior:
          - IntegrityError inside the block rolls back and raises the classified error,
            with the original exception chained as __cause__.
        """
        session = FakeSession()
        raw = unique_violation("uq_users_email")

        with pytest.raises(EmailConflictError) as excinfo:
            async with db_error_handler(session, "user.create"):
                raise raw

        assert excinfo.value.__cause__ is raw
        assert session.rollbacks == 1

    async def test_other_errors_become_storage_error(self):
        session = FakeSession()
        raw = OperationalError("SELECT 1", {}, Exception("server closed the connection"))

        with pytest.raises(StorageError) as excinfo:
            async with db_error_handler(session, "db.ping"):
                raise raw

        assert excinfo.value.__cause__ is raw
        assert excinfo.value.message == "Database operation failed"
        assert session.rollbacks == 1

    async def test_domain_errors_pass_through_untouched(self):
        session = FakeSession()
        original = NotFoundError()

        with pytest.raises(NotFoundError) as excinfo:
            async with db_error_handler(session, "user.get_by_id"):
                raise original

        assert excinfo.value is original
        assert session.rollbacks == 0

    async def test_failed_rollback_does_not_hide_the_error(self):
        session = FakeSession(fail_rollback=True)

        with pytest.raises(UsernameConflictError):
            async with db_error_handler(session, "user.update"):
                raise unique_violation("uq_users_username")

    async def test_success_path_does_nothing(self):
        session = FakeSession()

        async with db_error_handler(session, "user.list_all"):
            pass

        assert session.rollbacks == 0
