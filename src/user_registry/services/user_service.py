"""
User service: normalization, business validation and the unit of work.

The service sits between the HTTP routers and `UserRepository`:

    router -> UserService -> UserRepository -> database

- Inputs are normalized here (username / email trimmed and lower-cased, full name trimmed).
- `full_name` is validated here, before any repository call; an invalid label never
  reaches storage.
- Writes are committed here, once per operation.
- Taxonomy errors coming up from the repository pass through unchanged. The service does
  not catch `NotFoundError`; only the delete policy at the API layer may absorb it.
"""

import logging
from typing import Any, Mapping, Protocol
from uuid import UUID

from user_registry.models.user import UserRecord
from user_registry.validators.user_validators import (
    normalize_email,
    normalize_full_name,
    normalize_username,
    validate_full_name,
)

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    """The subset of `UserRepository` the service depends on (fakes implement this in tests)."""

    async def create(self, *, username: str, email: str, full_name: str) -> UserRecord: ...
    async def get_by_id(self, user_id: UUID) -> UserRecord: ...
    async def get_by_username(self, username: str) -> UserRecord: ...
    async def list_all(self) -> list[UserRecord]: ...
    async def update(self, user_id: UUID, changes: Mapping[str, Any]) -> UserRecord: ...
    async def delete(self, user_id: UUID) -> None: ...
    async def commit(self) -> None: ...


# Field -> normalizer applied to incoming values
NORMALIZERS = {
    "username": normalize_username,
    "email": normalize_email,
    "full_name": normalize_full_name,
}


def normalize_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize the present fields of a sparse update and validate `full_name` if present.

    Keys without a normalizer are passed through untouched; the query builder rejects them.
    """
    normalized: dict[str, Any] = {}
    for field, value in changes.items():
        normalizer = NORMALIZERS.get(field)
        normalized[field] = normalizer(value) if normalizer and isinstance(value, str) else value

    if "full_name" in normalized:
        validate_full_name(normalized["full_name"])

    return normalized


class UserService:
    def __init__(self, repository: UserStore):
        self.repository = repository

    # ------------------------
    # Reads
    # ------------------------

    async def list_users(self) -> list[UserRecord]:
        return await self.repository.list_all()

    async def get_by_username(self, username: str) -> UserRecord:
        return await self.repository.get_by_username(normalize_username(username))

    async def get_by_id(self, user_id: UUID) -> UserRecord:
        return await self.repository.get_by_id(user_id)

    # ------------------------
    # Writes
    # ------------------------

    async def create_user(self, *, username: str, email: str, full_name: str) -> UserRecord:
        """
        Normalize, validate and insert a new user, then commit.

        Raises:
            InvalidInputError: full name fails validation (nothing is written)
            UsernameConflictError / EmailConflictError: value already taken
            StorageError: any other storage failure
        """
        full_name = validate_full_name(normalize_full_name(full_name))

        record = await self.repository.create(
            username=normalize_username(username),
            email=normalize_email(email),
            full_name=full_name,
        )
        await self.repository.commit()

        logger.info("service.user.created", extra={"user_id": str(record.id)})
        return record

    async def update_user(self, user_id: UUID, changes: Mapping[str, Any]) -> UserRecord:
        """
        Apply a sparse update. An empty mapping is a no-op that returns the current record.
        """
        normalized = normalize_changes(changes)
        record = await self.repository.update(user_id, normalized)

        if normalized:
            await self.repository.commit()
            logger.info(
                "service.user.updated",
                extra={"user_id": str(user_id), "fields": sorted(normalized)},
            )
        return record

    async def delete_user(self, user_id: UUID) -> None:
        """
        Delete a user and commit.

        Raises:
            NotFoundError: no such user. Reported as-is; callers decide what it means.
        """
        await self.repository.delete(user_id)
        await self.repository.commit()
        logger.info("service.user.deleted", extra={"user_id": str(user_id)})
