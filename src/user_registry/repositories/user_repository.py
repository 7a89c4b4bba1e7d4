"""
User repository: every storage round trip for the `users` table.

Each operation is exactly one statement and either returns a `UserRecord` or
raises one taxonomy error from `user_registry.exceptions.base`:

| Method            | Success          | Errors                                                     |
| ----------------- | ---------------- | ---------------------------------------------------------- |
| `create`          | UserRecord       | UsernameConflictError, EmailConflictError, StorageError    |
| `get_by_id`       | UserRecord       | NotFoundError, StorageError                                |
| `get_by_username` | UserRecord       | NotFoundError, StorageError                                |
| `list_all`        | list[UserRecord] | StorageError                                               |
| `update`          | UserRecord       | NotFoundError, *ConflictError, StorageError                |
| `delete`          | None             | NotFoundError, StorageError                                |

The repository reports facts. Whether a missing row on delete is a failure is
decided at the API layer (see `api/v1/policies.py`), never here.

Transactions: statements run inside the session's transaction; `commit()` ends
the unit of work and is called by the service after a write.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy import delete, func, insert, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from user_registry.exceptions.base import NotFoundError
from user_registry.exceptions.mapper import db_error_handler
from user_registry.models.user import User, UserRecord
from .query_builder import build_partial_update

logger = logging.getLogger(__name__)

users_table = User.__table__


class UserRepository:
    """
    Repository for User rows.

    Args:
        db: the async database session (one per request)
        clock: optional source of created_at / updated_at values. Left unset, storage
               stamps rows with its own `now()` so every app instance shares one clock.
               Tests inject one to get distinct, predictable instants.
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] | None = None):
        self.db = db
        self.clock = clock

    # =================================================================================================================
    # Create
    # =================================================================================================================

    async def create(self, *, username: str, email: str, full_name: str) -> UserRecord:
        """
        Insert a user. Storage generates `id`; both timestamps are the same instant.

        Callers are expected to pass already-normalized values (see UserService).
        """
        logger.debug("repo.user.create.start", extra={"operation": "create"})
        start = time.perf_counter()
        now = self.clock() if self.clock is not None else func.now()

        stmt = (
            insert(users_table)
            .values(
                username=username,
                email=email,
                full_name=full_name,
                created_at=now,
                updated_at=now,
            )
            .returning(*users_table.c)
        )

        async with db_error_handler(self.db, "user.create"):
            result = await self.db.execute(stmt)
            record = UserRecord.from_row(result.mappings().one())

        logger.info(
            "repo.user.create.success",
            extra={
                "operation": "create",
                "id": str(record.id),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return record

    # =================================================================================================================
    # Read
    # =================================================================================================================

    async def get_by_id(self, user_id: UUID) -> UserRecord:
        """
        Fetch one user by id.

        Raises:
            NotFoundError: zero rows matched (never returned as None)
            StorageError: the query failed
        """
        return await self._fetch_one(users_table.c.id == user_id, "user.get_by_id", user_id=str(user_id))

    async def get_by_username(self, username: str) -> UserRecord:
        """Fetch one user by (already normalized) username."""
        return await self._fetch_one(users_table.c.username == username, "user.get_by_username")

    async def list_all(self) -> list[UserRecord]:
        """All users, oldest first. Pagination is intentionally not supported."""
        stmt = select(users_table).order_by(users_table.c.created_at, users_table.c.username)

        async with db_error_handler(self.db, "user.list_all"):
            result = await self.db.execute(stmt)
            records = [UserRecord.from_row(row) for row in result.mappings().all()]

        logger.debug("repo.user.list_all.success", extra={"count": len(records)})
        return records

    async def _fetch_one(self, condition, operation: str, **log_extra: Any) -> UserRecord:
        stmt = select(users_table).where(condition)

        async with db_error_handler(self.db, operation):
            result = await self.db.execute(stmt)
            row = result.mappings().one_or_none()

        if row is None:
            logger.debug(f"repo.{operation}.not_found", extra=log_extra)
            raise NotFoundError()

        return UserRecord.from_row(row)

    # =================================================================================================================
    # Update
    # =================================================================================================================

    async def update(self, user_id: UUID, changes: Mapping[str, Any]) -> UserRecord:
        """
        Apply a sparse update and return the fresh row.

        - Empty `changes`: no statement is written; the current row is fetched and
          returned (a no-op update is a read, and still 404s for a missing id).
        - Otherwise one `UPDATE ... RETURNING` built by `build_partial_update`.

        Raises:
            NotFoundError: no row has this id
            UsernameConflictError / EmailConflictError: the new value is taken
            StorageError: anything else
        """
        if not changes:
            logger.debug("repo.user.update.noop", extra={"user_id": str(user_id)})
            return await self.get_by_id(user_id)

        refreshed_at = self.clock() if self.clock is not None else None
        partial = build_partial_update(user_id, changes, refreshed_at=refreshed_at)

        async with db_error_handler(self.db, "user.update"):
            result = await self.db.execute(partial.statement)
            row = result.mappings().one_or_none()

        if row is None:
            logger.debug("repo.user.update.not_found", extra={"user_id": str(user_id)})
            raise NotFoundError()

        logger.info(
            "repo.user.update.success",
            extra={"user_id": str(user_id), "fields": list(partial.fields)},
        )
        return UserRecord.from_row(row)

    # =================================================================================================================
    # Delete
    # =================================================================================================================

    async def delete(self, user_id: UUID) -> None:
        """
        Hard-delete a user.

        Raises:
            NotFoundError: zero rows affected. This is the fact; whether it matters
                           is the caller's decision.
            StorageError: the statement failed
        """
        stmt = delete(users_table).where(users_table.c.id == user_id)

        async with db_error_handler(self.db, "user.delete"):
            result = await self.db.execute(stmt)

        if result.rowcount == 0:
            logger.debug("repo.user.delete.not_found", extra={"user_id": str(user_id)})
            raise NotFoundError()

        logger.info("repo.user.delete.success", extra={"user_id": str(user_id)})

    # =================================================================================================================
    # Unit of work / health
    # =================================================================================================================

    async def commit(self) -> None:
        """Commit the session. Deferred constraint failures are classified like any write."""
        async with db_error_handler(self.db, "user.commit"):
            await self.db.commit()

    async def ping(self) -> None:
        """Round trip used by the readiness probe; raises StorageError when the DB is unreachable."""
        async with db_error_handler(self.db, "db.ping"):
            await self.db.execute(text("SELECT 1"))


# Why Core statements (insert/update/delete on `users_table`) instead of ORM `add()` + `flush()`?
#   - Every operation must be a single round trip; `INSERT ... RETURNING` and
#     `UPDATE ... RETURNING` give back the stored row without a follow-up SELECT.
#   - Rows come back as plain mappings, so there is no identity map to go stale
#     between an UPDATE and the next read in the same session.
#
# Why raise NotFoundError instead of returning None?
#   - A zero-row result is part of the taxonomy; returning None would let callers
#     forget to check and serialize `null` as a success.
